"""
Utility functions for the unblur viewer.

Provides timing helpers and small colour/coordinate conversions.
"""

from typing import Callable, Sequence, Tuple
from functools import wraps
import math
import time
import logging

logger = logging.getLogger(__name__)


class Timer:
    """Context manager for timing code blocks."""

    def __init__(self, name: str = "Operation", log: bool = True):
        """
        Initialize timer.

        Args:
            name: Name of the operation being timed.
            log: Whether to log the result.
        """
        self.name = name
        self.log = log
        self.elapsed: float = 0.0

    def __enter__(self) -> 'Timer':
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        self.elapsed = time.perf_counter() - self.start_time
        if self.log:
            logger.debug(f"{self.name} took {self.elapsed * 1000:.2f}ms")


def timed(func: Callable) -> Callable:
    """
    Decorator to time function execution.

    Args:
        func: Function to wrap.

    Returns:
        Wrapped function that logs execution time.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        with Timer(func.__name__):
            return func(*args, **kwargs)
    return wrapper


def clamp(value: float, min_val: float, max_val: float) -> float:
    """
    Clamp a value to a range.

    Args:
        value: Value to clamp.
        min_val: Minimum allowed value.
        max_val: Maximum allowed value.

    Returns:
        Clamped value.
    """
    return max(min_val, min(value, max_val))


def to_uint8_color(color: Sequence[float]) -> Tuple[int, int, int]:
    """
    Truncate a float colour to 8-bit channels.

    Fractions are dropped, not rounded, so 191.25 becomes 191. Channels are
    first snapped to 9 decimals so that float error in a whole-number mean
    (119.99999999999999) does not truncate to the integer below.
    """
    r, g, b = (int(clamp(math.floor(round(c, 9)), 0, 255)) for c in color[:3])
    return r, g, b


def parse_point(text: str) -> Tuple[float, float]:
    """Parse an ``X,Y`` pair as used on the command line."""
    try:
        x, y = (float(part) for part in text.split(','))
    except ValueError:
        raise ValueError(f"Expected a point as X,Y, got {text!r}")
    return x, y
