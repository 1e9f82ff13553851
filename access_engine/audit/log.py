# (c) Copyright Datacraft, 2026
"""Append-only, retention-bounded audit log."""
import logging
import threading
from collections import deque
from datetime import datetime, timedelta
from typing import Any

from access_engine.utils import Clock, SystemClock, as_utc
from .models import AuditAction, AuditLogEntry, AuditResult

logger = logging.getLogger(__name__)

# Context keys lifted into dedicated entry fields
CONTEXT_CLIENT_IP = 'client_ip'
CONTEXT_USER_AGENT = 'user_agent'

# Entries removed per lock acquisition during pruning
PRUNE_BATCH_SIZE = 1000


class AuditLog:
	"""
	In-memory audit trail.

	Entries are kept in record order. The log is capped at `max_entries`;
	once full, the oldest entry is dropped for every new one. Recording
	is a single append under a short lock and never blocks on I/O.
	"""

	def __init__(
		self,
		max_entries: int = 100000,
		clock: Clock | None = None,
		enabled: bool = True,
	):
		self.clock = clock or SystemClock()
		self.enabled = enabled
		self._entries: deque[AuditLogEntry] = deque(maxlen=max_entries)
		self._lock = threading.Lock()

	def __len__(self) -> int:
		with self._lock:
			return len(self._entries)

	def record(self, entry: AuditLogEntry) -> AuditLogEntry | None:
		"""Append an entry as-is."""
		if not self.enabled:
			return None
		with self._lock:
			self._entries.append(entry)
		return entry

	def query(
		self,
		user_id: str | None = None,
		resource: str | None = None,
		start_time: datetime | None = None,
		end_time: datetime | None = None,
		limit: int = 100,
		action: AuditAction | None = None,
	) -> list[AuditLogEntry]:
		"""
		Return matching entries, most recent first.

		All filters are optional and combined with AND; `limit` caps the
		number of entries returned.
		"""
		if limit <= 0:
			return []
		start_time = as_utc(start_time)
		end_time = as_utc(end_time)
		with self._lock:
			snapshot = list(self._entries)

		results: list[AuditLogEntry] = []
		for entry in reversed(snapshot):
			if user_id is not None and entry.user_id != user_id:
				continue
			if resource is not None and entry.resource != resource:
				continue
			if start_time is not None and entry.timestamp < start_time:
				continue
			if end_time is not None and entry.timestamp > end_time:
				continue
			if action is not None and entry.action != action:
				continue
			results.append(entry)
			if len(results) >= limit:
				break
		return results

	def prune_older_than(self, retention: timedelta) -> int:
		"""Remove entries recorded before now - retention."""
		cutoff = self.clock.now() - retention
		removed = 0
		while True:
			with self._lock:
				batch = 0
				while (
					self._entries
					and batch < PRUNE_BATCH_SIZE
					and self._entries[0].timestamp < cutoff
				):
					self._entries.popleft()
					batch += 1
			removed += batch
			if batch < PRUNE_BATCH_SIZE:
				break
		if removed:
			logger.debug(f"Pruned {removed} audit entries older than {cutoff.isoformat()}")
		return removed

	def clear(self) -> None:
		with self._lock:
			self._entries.clear()

	# Recorders

	def log_permission_check(
		self,
		user_id: str,
		resource: str,
		action: str,
		context: dict[str, Any],
		result: str,
		**details,
	) -> AuditLogEntry | None:
		"""Record a permission check and its outcome."""
		extra = {
			k: v for k, v in context.items()
			if k not in (CONTEXT_CLIENT_IP, CONTEXT_USER_AGENT)
		}
		details = {'requested_action': action, **details}
		if extra:
			details['context'] = extra
		return self._append(
			user_id=user_id,
			action=AuditAction.PERMISSION_CHECK,
			resource=resource,
			result=result,
			client_ip=_as_str(context.get(CONTEXT_CLIENT_IP)),
			user_agent=_as_str(context.get(CONTEXT_USER_AGENT)),
			details=details,
		)

	def log_event(
		self,
		action: AuditAction,
		actor: str | None,
		resource: str | None,
		result: str = AuditResult.SUCCESS,
		**details,
	) -> AuditLogEntry | None:
		"""Record a directory or policy change made by `actor`."""
		return self._append(
			user_id=actor,
			action=action,
			resource=resource,
			result=result,
			details=details,
		)

	def log_error(
		self,
		message: str,
		user_id: str | None,
		resource: str | None,
		exception: BaseException,
		**details,
	) -> AuditLogEntry | None:
		return self._append(
			user_id=user_id,
			action=AuditAction.ERROR,
			resource=resource,
			result=AuditResult.ERROR,
			details={
				'error_message': message,
				'exception_type': type(exception).__name__,
				'exception_message': str(exception),
				**details,
			},
		)

	def _append(self, **fields) -> AuditLogEntry | None:
		if not self.enabled:
			return None
		with self._lock:
			# Timestamp under the lock keeps the log ordered by time
			entry = AuditLogEntry(timestamp=self.clock.now(), **fields)
			self._entries.append(entry)
		return entry


def _as_str(value: Any) -> str | None:
	return value if isinstance(value, str) else None
