"""Command line tokenizer.

Splits the argument part of a command message into tokens. The grammar
is deliberately flat:

    a b c          -> ["a", "b", "c"]
    a "b c" d      -> ["a", "b c", "d"]
    a\\ b          -> ["a b"]
    \\"quoted\\"   -> ['"quoted"']

A backslash makes the next character literal, inside or outside quotes.
A closing quote ends the token even when no space follows it. An
unterminated quote swallows the rest of the input into one token.
"""

from typing import List, Tuple

QUOTE = '"'
ESCAPE = "\\"
SPACE = " "


def tokenize(text: str) -> List[str]:
    """Split an argument string into tokens in a single left-to-right pass."""
    tokens: List[str] = []
    buffer = ""
    in_quote = False
    escaped = False

    for char in text:
        complete = False
        if escaped:
            buffer += char
            escaped = False
        elif char == QUOTE:
            if in_quote:
                complete = True
            in_quote = not in_quote
        elif char == SPACE and not in_quote:
            complete = True
        elif char == ESCAPE:
            escaped = True
        else:
            buffer += char

        if complete and buffer:
            tokens.append(buffer)
            buffer = ""

    # Trailing token without a delimiter; a dangling backslash is dropped
    if buffer:
        tokens.append(buffer)
    return tokens


def split_command_line(content: str, prefix: str) -> Tuple[str, List[str]]:
    """Split message content into (verb, args).

    The verb is the first space-delimited word with the leading prefix removed.
    Arguments are the tokens of everything after the first space.
    """
    head, _, rest = content.partition(SPACE)
    return head.replace(prefix, "", 1), tokenize(rest)
