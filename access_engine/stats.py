# (c) Copyright Datacraft, 2026
"""Running counters for permission checks and maintenance."""
import threading
from dataclasses import dataclass

from pydantic import BaseModel


@dataclass(frozen=True)
class StatsCounters:
	"""Immutable copy of the collector's counters."""
	total_checks: int = 0
	granted_checks: int = 0
	denied_checks: int = 0
	errored_checks: int = 0
	cache_hits: int = 0
	role_assignments: int = 0
	role_revocations: int = 0
	cleanup_operations: int = 0
	average_check_time_ms: float = 0.0


class PermissionStatistics(BaseModel):
	"""Read-only statistics view returned to callers."""
	state: str
	total_users: int
	active_users: int
	total_roles: int
	active_roles: int
	total_permissions: int
	active_permissions: int
	total_checks: int
	granted_checks: int
	denied_checks: int
	errored_checks: int
	cache_hits: int
	cache_hit_rate: float
	cache_entries: int
	cache_active_entries: int
	cache_expired_entries: int
	max_cache_size: int
	role_assignments: int
	role_revocations: int
	cleanup_operations: int
	average_check_time_ms: float
	audit_entries: int


class StatisticsCollector:
	"""Lock-protected counters; every update is atomic."""

	def __init__(self):
		self._lock = threading.Lock()
		self._total_checks = 0
		self._granted_checks = 0
		self._denied_checks = 0
		self._errored_checks = 0
		self._cache_hits = 0
		self._role_assignments = 0
		self._role_revocations = 0
		self._cleanup_operations = 0
		self._average_check_time_ms = 0.0

	def record_check(
		self,
		granted: bool,
		denied: bool,
		cached: bool,
		elapsed_ms: float,
	) -> None:
		"""Count one completed check; errors are neither granted nor denied."""
		with self._lock:
			self._total_checks += 1
			if granted:
				self._granted_checks += 1
			elif denied:
				self._denied_checks += 1
			else:
				self._errored_checks += 1
			if cached:
				self._cache_hits += 1
			# Incremental mean over all completed checks
			self._average_check_time_ms += (
				(elapsed_ms - self._average_check_time_ms) / self._total_checks
			)

	def record_role_assignment(self) -> None:
		with self._lock:
			self._role_assignments += 1

	def record_role_revocation(self) -> None:
		with self._lock:
			self._role_revocations += 1

	def record_cleanup(self) -> None:
		with self._lock:
			self._cleanup_operations += 1

	def snapshot(self) -> StatsCounters:
		with self._lock:
			return StatsCounters(
				total_checks=self._total_checks,
				granted_checks=self._granted_checks,
				denied_checks=self._denied_checks,
				errored_checks=self._errored_checks,
				cache_hits=self._cache_hits,
				role_assignments=self._role_assignments,
				role_revocations=self._role_revocations,
				cleanup_operations=self._cleanup_operations,
				average_check_time_ms=self._average_check_time_ms,
			)


def cache_hit_rate(counters: StatsCounters) -> float:
	if counters.total_checks == 0:
		return 0.0
	return counters.cache_hits / counters.total_checks
