# (c) Copyright Datacraft, 2026
from datetime import datetime, timezone
from typing import Protocol


def utc_now() -> datetime:
	return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
	"""Attach UTC to naive datetimes; aware ones are returned unchanged."""
	if value is not None and value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value


class Clock(Protocol):
	"""Source of the current time for TTL and time-window evaluation."""

	def now(self) -> datetime:
		...


class SystemClock:
	"""Wall clock in UTC."""

	def now(self) -> datetime:
		return utc_now()


def raise_on_empty(**kwargs):
	"""Raises ValueError exception if at least one value of the
	key in kwargs dictionary is None or a blank string
	"""
	for key, value in kwargs.items():
		if value is None or (isinstance(value, str) and not value.strip()):
			raise ValueError(
				f"{key} is expected to be non-empty"
			)


def elapsed_ms(started: float, finished: float) -> float:
	"""Convert a pair of perf_counter readings to milliseconds."""
	return (finished - started) * 1000
