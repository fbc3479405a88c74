"""Delay computation between delivery attempts."""

from enum import Enum

# QTimer intervals are signed 32-bit milliseconds
MAX_DELAY_MS = 2**31 - 1


class BackoffPolicy(Enum):
    """How the delay before a retry grows with the attempt number."""

    EXPONENTIAL = "exponential"
    # base * (2 XOR attempt); kept for compatibility with older clients
    LEGACY_XOR = "xor"


def backoff_delay_ms(
    attempt: int,
    policy: BackoffPolicy = BackoffPolicy.EXPONENTIAL,
    base_ms: int = 1000,
) -> int:
    """Return the delay before retrying a failed delivery attempt.

    Args:
        attempt: Number of the attempt that just failed (1-based)
        policy: Backoff policy
        base_ms: Delay unit in milliseconds

    Returns:
        Delay in milliseconds, clamped to MAX_DELAY_MS

    Examples:
        >>> backoff_delay_ms(3)
        8000
        >>> backoff_delay_ms(3, BackoffPolicy.LEGACY_XOR)
        1000
    """
    if attempt < 0:
        raise ValueError("attempt must be non-negative")

    if policy is BackoffPolicy.LEGACY_XOR:
        delay = base_ms * (2 ^ attempt)
    else:
        delay = base_ms * 2**attempt
    return min(delay, MAX_DELAY_MS)
