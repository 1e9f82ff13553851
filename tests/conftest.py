# (c) Copyright Datacraft, 2026
"""Shared fixtures for the access control engine tests."""
from datetime import datetime, timedelta, timezone

import pytest

from access_engine.config import Settings
from access_engine.directory import EntityDirectory
from access_engine.engine import AccessControlEngine

T0 = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class ManualClock:
	"""Clock that only moves when told to."""

	def __init__(self, start: datetime = T0):
		self.current = start

	def now(self) -> datetime:
		return self.current

	def advance(self, **kwargs) -> datetime:
		self.current += timedelta(**kwargs)
		return self.current

	def set(self, value: datetime) -> None:
		self.current = value


class StubSessions:
	"""Session validator with a configurable answer per user."""

	def __init__(self, valid: bool = True):
		self.valid = valid
		self.invalid_users: set[str] = set()
		self.calls = 0
		self.cleanup_result = 0
		self.cleanup_error: Exception | None = None

	async def is_session_valid(self, user_id: str) -> bool:
		self.calls += 1
		return self.valid and user_id not in self.invalid_users

	async def cleanup_expired_sessions(self) -> int:
		if self.cleanup_error is not None:
			raise self.cleanup_error
		return self.cleanup_result


@pytest.fixture
def clock():
	return ManualClock()


@pytest.fixture
def settings():
	return Settings(start_maintenance=False)


@pytest.fixture
def sessions():
	return StubSessions()


@pytest.fixture
def directory():
	return EntityDirectory()


@pytest.fixture
async def engine(settings, clock, sessions):
	"""Initialized engine with default roles and permissions."""
	engine = AccessControlEngine(
		settings=settings,
		clock=clock,
		session_validator=sessions,
	)
	await engine.initialize()
	yield engine
	await engine.shutdown()
