import time
from typing import Union


class Deadline:
    """
    An absolute expiry on the monotonic clock.

    A deadline is computed once from a relative duration and shared by every
    attempt of one waiting operation. It is never extended.
    """

    def __init__(self, expiry: float):
        self.expiry = expiry

    @classmethod
    def after(cls, seconds: float) -> 'Deadline':
        if seconds < 0:
            raise ValueError(f"Deadline duration must be non-negative, got {seconds}")
        return cls(time.monotonic() + seconds)

    @classmethod
    def coerce(cls, deadline: Union['Deadline', float, int]) -> 'Deadline':
        """Accept either a Deadline or a relative number of seconds."""
        if isinstance(deadline, Deadline):
            return deadline
        return cls.after(float(deadline))

    def remaining(self) -> float:
        return max(0.0, self.expiry - time.monotonic())

    def expired(self) -> bool:
        return time.monotonic() >= self.expiry

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining():.3f}s)"
