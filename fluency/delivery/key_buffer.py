"""
Buffered answer keys.

Some answers take more than one keystroke: a note letter may be followed
by an accidental ("C" then "#"), and a number may have two digits ("1"
then "1"). PendingKeyBuffer holds the first symbol for a short window and
commits it on its own when the window expires or another key arrives.
"""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from .timers import SupportsCallLater, TimerSlot

NOTE_LETTERS = "CDEFGAB"
SHARP_KEYS = frozenset({"#", "s", "S"})
FLAT_KEYS = frozenset({"b", "B"})
PENDING_WINDOW_MS = 400


class PendingKeyBuffer:
    """
    Timeout-guarded pending symbol for note and number answers.

    Usage:
        buffer = PendingKeyBuffer(submit, max_number=11)
        buffer.handle_key("1")   # held
        buffer.handle_key("0")   # submits "10"
    """

    def __init__(
        self,
        submit: Callable[[str], None],
        allow_accidentals: Callable[[], bool] = lambda: True,
        max_number: int | None = None,
        window_ms: float = PENDING_WINDOW_MS,
        loop: SupportsCallLater | None = None,
    ):
        """
        Args:
            submit: Receives each committed answer
            allow_accidentals: Whether note letters wait for a #/b marker
            max_number: Largest numeric answer; None disables digit input
            window_ms: How long a pending symbol is held
            loop: Timer loop (the running loop if None)
        """
        self.submit = submit
        self.allow_accidentals = allow_accidentals
        self.max_number = max_number
        self.window_ms = window_ms
        self.pending: str | None = None
        self._timer = TimerSlot("key-buffer", loop)

    def reset(self) -> None:
        """Drop the pending symbol without submitting it."""
        self._timer.cancel()
        self.pending = None

    def flush(self) -> None:
        """Commit the pending symbol now, if any."""
        self._timer.cancel()
        if self.pending is not None:
            value, self.pending = self.pending, None
            self.submit(value)

    def handle_key(self, key: str) -> bool:
        """
        Feed one keystroke.

        Returns:
            True if the key was consumed as answer input
        """
        if self.pending is not None and self.pending in NOTE_LETTERS:
            if key in SHARP_KEYS:
                return self._commit(self.pending + "#")
            if key in FLAT_KEYS:
                return self._commit(self.pending + "b")

        if key.isdigit() and len(key) == 1 and self.max_number is not None:
            return self._handle_digit(int(key))

        letter = key.upper()
        if len(key) == 1 and letter in NOTE_LETTERS:
            self.flush()
            if self.allow_accidentals():
                self._hold(letter)
            else:
                self.submit(letter)
            return True

        # Any other key settles what was held
        self.flush()
        return False

    def _handle_digit(self, digit: int) -> bool:
        if self.pending is not None and self.pending.isdigit():
            number = int(self.pending) * 10 + digit
            if number <= self.max_number:
                return self._commit(str(number))
            self.flush()
        else:
            self.flush()

        if digit * 10 <= self.max_number:
            self._hold(str(digit))
        elif digit <= self.max_number:
            self.submit(str(digit))
        else:
            logger.debug(f"Digit {digit} exceeds max answer {self.max_number}")
        return True

    def _hold(self, symbol: str) -> None:
        self.pending = symbol
        self._timer.schedule(self.window_ms, self._expire)

    def _expire(self) -> None:
        if self.pending is not None:
            value, self.pending = self.pending, None
            self.submit(value)

    def _commit(self, value: str) -> bool:
        self._timer.cancel()
        self.pending = None
        self.submit(value)
        return True
