# (c) Copyright Datacraft, 2026
"""Session validation consumed by the engine, plus an in-memory implementation."""
import logging
import secrets
import threading
from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from access_engine.config import Settings
from access_engine.utils import Clock, SystemClock

logger = logging.getLogger(__name__)


@runtime_checkable
class SessionValidator(Protocol):
	"""Interface of the authentication subsystem the engine relies on."""

	async def is_session_valid(self, user_id: str) -> bool:
		...

	async def cleanup_expired_sessions(self) -> int:
		...


class UserSession(BaseModel):
	"""An authenticated session."""
	model_config = ConfigDict(frozen=True)

	session_id: str
	user_id: str
	created_at: datetime
	last_access_at: datetime
	client_ip: str | None = None
	user_agent: str | None = None
	is_active: bool = True

	def is_expired(self, now: datetime, timeout: timedelta) -> bool:
		return now - self.last_access_at > timeout


class InMemorySessionManager:
	"""
	Session store with idle timeout.

	A user has a valid session if at least one of their active sessions
	was accessed within `session_timeout`.
	"""

	def __init__(
		self,
		session_timeout: timedelta = timedelta(minutes=30),
		clock: Clock | None = None,
	):
		self.session_timeout = session_timeout
		self.clock = clock or SystemClock()
		self._sessions: dict[str, UserSession] = {}
		self._lock = threading.Lock()

	@classmethod
	def from_settings(cls, settings: Settings, clock: Clock | None = None) -> "InMemorySessionManager":
		"""Build a manager whose idle timeout is `session_ttl_ms`."""
		return cls(session_timeout=settings.session_ttl, clock=clock)

	def create_session(
		self,
		user_id: str,
		client_ip: str | None = None,
		user_agent: str | None = None,
	) -> UserSession:
		"""Open a new session for a user."""
		now = self.clock.now()
		session = UserSession(
			session_id=f"session_{secrets.token_urlsafe(16)}",
			user_id=user_id,
			created_at=now,
			last_access_at=now,
			client_ip=client_ip,
			user_agent=user_agent,
		)
		with self._lock:
			self._sessions[session.session_id] = session
		logger.info(f"Session created for user {user_id}")
		return session

	def get_session(self, session_id: str) -> UserSession | None:
		with self._lock:
			return self._sessions.get(session_id)

	def touch(self, session_id: str) -> UserSession | None:
		"""Refresh the last access time of a session."""
		with self._lock:
			session = self._sessions.get(session_id)
			if session is None:
				return None
			session = session.model_copy(update={'last_access_at': self.clock.now()})
			self._sessions[session_id] = session
			return session

	def terminate_session(self, session_id: str) -> bool:
		with self._lock:
			session = self._sessions.get(session_id)
			if session is None or not session.is_active:
				return False
			self._sessions[session_id] = session.model_copy(update={'is_active': False})
		logger.info(f"Session {session_id} terminated")
		return True

	def terminate_user_sessions(self, user_id: str) -> int:
		count = 0
		with self._lock:
			for session in list(self._sessions.values()):
				if session.user_id == user_id and session.is_active:
					self._sessions[session.session_id] = session.model_copy(
						update={'is_active': False}
					)
					count += 1
		if count:
			logger.info(f"Terminated {count} sessions for user {user_id}")
		return count

	def get_user_active_sessions(self, user_id: str) -> list[UserSession]:
		now = self.clock.now()
		with self._lock:
			sessions = list(self._sessions.values())
		return [
			s for s in sessions
			if s.user_id == user_id
			and s.is_active
			and not s.is_expired(now, self.session_timeout)
		]

	async def is_session_valid(self, user_id: str) -> bool:
		return bool(self.get_user_active_sessions(user_id))

	async def cleanup_expired_sessions(self) -> int:
		"""Drop expired and terminated sessions."""
		now = self.clock.now()
		with self._lock:
			stale = [
				s.session_id for s in self._sessions.values()
				if not s.is_active or s.is_expired(now, self.session_timeout)
			]
			for session_id in stale:
				del self._sessions[session_id]
		if stale:
			logger.debug(f"Removed {len(stale)} expired sessions")
		return len(stale)
