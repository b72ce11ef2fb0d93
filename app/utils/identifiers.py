"""
Record identifier generation

Identifiers are locally unique only: a base-36 millisecond timestamp followed
by a random base-36 suffix. Collisions are not checked and the values are not
suitable for anything security sensitive.
"""
import random
import string
import time


_BASE36_ALPHABET = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    """
    Encode a non-negative integer in base 36 (digits then lowercase letters)

    Args:
        value: Integer to encode

    Returns:
        Base-36 string, "0" for zero
    """
    if value < 0:
        raise ValueError("Cannot base-36 encode a negative value")
    if value == 0:
        return "0"

    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_id(timestamp_ms: int | None = None) -> str:
    """
    Generate a record identifier

    Args:
        timestamp_ms: Epoch milliseconds to encode (defaults to now)

    Returns:
        Timestamp prefix concatenated with a random suffix
    """
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    suffix = to_base36(random.getrandbits(52))
    return to_base36(timestamp_ms) + suffix
