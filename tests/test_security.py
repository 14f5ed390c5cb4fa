"""Tests for security module."""

from cmdwire.security import (
    MAX_INPUT_LENGTH,
    RateLimiter,
    is_uuid,
    mask,
    normalize_phone_number,
    sanitize_input,
    sender_matches,
)


# --- sanitize_input tests ---

def test_sanitize_input_strips_control_chars():
    """Control characters should be removed."""
    result = sanitize_input("hello\x00world\x01test")
    assert "\x00" not in result
    assert "\x01" not in result
    assert "hello" in result


def test_sanitize_input_preserves_newlines():
    """Newlines and tabs should be preserved."""
    result = sanitize_input("hello\nworld\ttab")
    assert "\n" in result
    assert "\t" in result


def test_sanitize_input_enforces_length_limit():
    long_input = "a" * (MAX_INPUT_LENGTH * 2)
    assert len(sanitize_input(long_input)) == MAX_INPUT_LENGTH


def test_sanitize_input_removes_bidi_chars():
    """Unicode bidi override characters should be removed."""
    assert "\u202e" not in sanitize_input("hello\u202eworld")


def test_sanitize_input_keeps_quotes_and_backslashes():
    """Tokenizer syntax must survive sanitization."""
    text = '!say "a b" c\\ d'
    assert sanitize_input(text) == text


# --- normalize_phone_number tests ---

def test_normalize_phone_preserves_plus():
    assert normalize_phone_number("+12125551234") == "+12125551234"


def test_normalize_phone_strips_formatting():
    assert normalize_phone_number("+1 (212) 555-1234") == "+12125551234"


def test_normalize_phone_adds_plus():
    assert normalize_phone_number("12125551234") == "+12125551234"


# --- is_uuid tests ---

def test_is_uuid_recognizes_valid_uuid():
    assert is_uuid("abc12345-def6-7890-abcd-ef1234567890") is True


def test_is_uuid_rejects_phone_number():
    assert is_uuid("+12125551234") is False


def test_is_uuid_rejects_partial_uuid():
    assert is_uuid("abc12345-def6-7890") is False


# --- sender_matches tests ---

def test_sender_matches_uuid():
    uuid = "abc12345-def6-7890-abcd-ef1234567890"
    assert sender_matches(uuid, [uuid]) is True
    assert sender_matches(uuid, ["+12125551234"]) is False


def test_sender_matches_mixed_uuid_and_phone():
    uuid = "abc12345-def6-7890-abcd-ef1234567890"
    phone = "+12125551234"
    allowed = [uuid, phone]
    assert sender_matches(uuid, allowed) is True
    assert sender_matches(phone, allowed) is True
    assert sender_matches("+15559999999", allowed) is False


def test_sender_matches_phone_normalization():
    assert sender_matches("+1 (212) 555-1234", ["+12125551234"]) is True


# --- mask tests ---

def test_mask_keeps_last_four():
    assert mask("+12125551234") == "...1234"


# --- RateLimiter tests ---

def test_rate_limiter_blocks_over_limit():
    limiter = RateLimiter(max_requests=3, window=60)
    assert all(limiter.check("+1") for _ in range(3))
    assert limiter.check("+1") is False


def test_rate_limiter_retry_after():
    now = [100.0]
    limiter = RateLimiter(max_requests=1, window=30, clock=lambda: now[0])
    limiter.check("+1")
    now[0] = 110.0
    assert limiter.retry_after("+1") == 20.0
    assert limiter.retry_after("+2") == 0.0


def test_rate_limiter_prunes_stale_senders():
    now = [1000.0]
    limiter = RateLimiter(max_requests=5, window=10, clock=lambda: now[0])
    limiter.check("+1")
    now[0] += 400
    limiter.check("+2")
    assert "+1" not in limiter._data
    assert "+2" in limiter._data


def test_rate_limiter_reset():
    limiter = RateLimiter(max_requests=1, window=60)
    limiter.check("+1")
    limiter.reset()
    assert limiter.check("+1") is True
