from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import timedelta


class PerformanceTimer:
    """Context manager measuring the wall-clock duration of a code block with
    ``time.perf_counter()``.

    Example:
    >>> with PerformanceTimer() as timer:
    ...     time.sleep(0.5)
    >>> print(timer)
    """

    def __init__(self) -> None:
        self.start_time: float = None
        self.end_time: float = None

    def __enter__(self) -> PerformanceTimer:
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args, **kwargs):
        self.end_time = time.perf_counter()

    def __str__(self) -> str:
        return str(self.timedelta)

    @property
    def time(self) -> float:
        """
        Returns:
            float: elapsed time in seconds
        """
        return self.end_time - self.start_time

    @property
    def timedelta(self) -> timedelta:
        return timedelta(seconds=self.time)


@dataclass
class SearchTimes:
    construction_time: timedelta = timedelta()
    update_time: timedelta = timedelta()
    total_training_time: timedelta = timedelta()

    def __add__(self, other: SearchTimes) -> SearchTimes:
        if other == 0:
            return self
        if not isinstance(other, SearchTimes):
            raise TypeError(f"Cannot add {type(other)} to SearchTimes")
        return SearchTimes(
            construction_time=self.construction_time + other.construction_time,
            update_time=self.update_time + other.update_time,
            total_training_time=self.total_training_time + other.total_training_time,
        )

    def __radd__(self, other: SearchTimes) -> SearchTimes:
        return self.__add__(other)

    def __repr__(self) -> str:
        return (
            f"construction_time={self.construction_time.total_seconds()}, "
            f"update_time={self.update_time.total_seconds()}, "
            f"total_training_time={self.total_training_time.total_seconds()}"
        )
