"""Monotonic record id generation."""

import time
from typing import Callable, Optional

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(number: int) -> str:
    """Encode a non-negative integer in lowercase base 36."""
    if number < 0:
        raise ValueError("Cannot encode negative numbers")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_ALPHABET[remainder])
    return "".join(reversed(digits))


class IdGenerator:
    """Generate string ids that sort in creation order.

    Ids are the base-36 millisecond clock followed by a four-digit base-36
    counter. If the clock stalls or steps backwards the previous timestamp
    is reused and the counter advances, so ids never repeat or go backwards
    within one generator.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        """Initialize id generator.

        Args:
            clock: Optional time source returning seconds (defaults to time.time)
        """
        self._clock = clock or time.time
        self._last_millis = -1
        self._counter = 0

    def __call__(self) -> str:
        millis = int(self._clock() * 1000)
        if millis <= self._last_millis:
            millis = self._last_millis
            self._counter += 1
        else:
            self._last_millis = millis
            self._counter = 0
        return f"{to_base36(millis)}{to_base36(self._counter).rjust(4, '0')}"
