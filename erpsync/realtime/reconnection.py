"""Reconnect scheduling decisions for channel sessions."""

import logging
import random

from .config import ReconnectPolicy, ReconnectStrategy

logger = logging.getLogger(__name__)


def should_retry(attempts: int, policy: ReconnectPolicy) -> bool:
    """Whether another automatic attempt is allowed after *attempts* so far."""
    return attempts < policy.max_attempts


def compute_delay(attempt: int, policy: ReconnectPolicy) -> float:
    """Compute the delay before the given reconnect attempt.

    Args:
        attempt: Zero-based attempt index (0 = first reconnect).
        policy: Reconnect policy.

    Returns:
        Delay in seconds, capped at max_delay.
    """
    if policy.strategy == ReconnectStrategy.EXPONENTIAL:
        delay = policy.interval_seconds * (2 ** attempt)
    elif policy.strategy == ReconnectStrategy.LINEAR:
        delay = policy.interval_seconds * (attempt + 1)
    else:  # CONSTANT
        delay = policy.interval_seconds

    if policy.jitter_max > 0:
        delay += random.uniform(0, policy.jitter_max)

    return min(delay, policy.max_delay)
