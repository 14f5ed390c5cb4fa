"""Check chain evaluation and ready-made checks.

A check is a synchronous predicate over an incoming message. Chains are
evaluated in registration order and stop at the first check returning
a falsy value. A check may instead raise (usually a CheckFailure
subclass) to carry a reason through to the bot's error handler.
"""

import inspect
from typing import Any, Callable, Iterable, List, Optional

import structlog

from .exceptions import PermissionDenied, RateLimited
from .security import (
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW,
    RateLimiter,
    mask,
    sender_matches,
)

logger = structlog.get_logger("cmdwire.security")

# Type alias for checks: (message) -> bool
Check = Callable[[Any], bool]


def run_checks(checks: Iterable[Check], message: Any) -> bool:
    """Evaluate checks in order; False as soon as one refuses.

    Exceptions raised by a check propagate to the caller.

    Raises:
        TypeError: If a check returns an awaitable instead of a bool.
    """
    for check in checks:
        result = check(message)
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            raise TypeError(
                f"check {getattr(check, '__name__', repr(check))} returned an "
                "awaitable; checks must be synchronous"
            )
        if not result:
            logger.debug(
                "check_refused",
                check=getattr(check, "__name__", repr(check)),
            )
            return False
    return True


def is_not_bot(message: Any) -> bool:
    """Refuse messages written by bot accounts."""
    return not message.author.bot


def is_guild_owner(message: Any) -> bool:
    """Pass only for the owner of the group the message was posted in.

    Raises:
        PermissionDenied: Outside a group, or when the author isn't its owner.
    """
    guild = message.guild
    if guild is not None and guild.owner_id and message.author.id == guild.owner_id:
        return True
    raise PermissionDenied(
        "Only the group owner can use this command", sender=mask(message.author.id)
    )


def allowed_senders(numbers: List[str]) -> Check:
    """Build a check passing only for senders in an allow-list.

    Phone numbers are compared after E.164 normalization, UUIDs verbatim.

    Raises:
        PermissionDenied: From the returned check, for unknown senders.
    """
    allowed = list(numbers)

    def is_allowed_sender(message: Any) -> bool:
        sender = message.author.id
        if sender_matches(sender, allowed):
            return True
        logger.warning("unauthorized_access_attempt", sender=mask(sender))
        raise PermissionDenied("You are not allowed to use this bot", sender=mask(sender))

    return is_allowed_sender


def rate_limited(
    max_requests: int = RATE_LIMIT_MAX_REQUESTS,
    window: float = RATE_LIMIT_WINDOW,
    limiter: Optional[RateLimiter] = None,
) -> Check:
    """Build a check enforcing a per-author sliding-window rate limit.

    The returned check owns its RateLimiter unless one is passed in.

    Raises:
        RateLimited: From the returned check, once the author exceeds the limit.
    """
    limiter = limiter or RateLimiter(max_requests=max_requests, window=window)

    def within_rate_limit(message: Any) -> bool:
        sender = message.author.id
        if limiter.check(sender):
            return True
        raise RateLimited(
            "Rate limited. Please wait before sending more commands.",
            retry_after=limiter.retry_after(sender),
            sender=mask(sender),
        )

    within_rate_limit.limiter = limiter
    return within_rate_limit
