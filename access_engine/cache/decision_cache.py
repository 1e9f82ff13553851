# (c) Copyright Datacraft, 2026
"""TTL-bounded cache of permission decisions."""
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta

from access_engine.utils import Clock, SystemClock

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, str]  # (user_id, resource, action)

# Keys removed per lock acquisition during sweeps
SWEEP_BATCH_SIZE = 500


@dataclass(frozen=True)
class CacheEntry:
	"""A cached decision."""
	user_id: str
	resource: str
	action: str
	granted: bool
	timestamp: datetime
	ttl: timedelta

	@property
	def key(self) -> CacheKey:
		return (self.user_id, self.resource, self.action)

	def is_expired(self, now: datetime) -> bool:
		return self.timestamp + self.ttl <= now


@dataclass(frozen=True)
class CacheStats:
	"""Cache occupancy at one point in time."""
	total_entries: int
	expired_entries: int
	active_entries: int
	max_size: int


@dataclass(frozen=True)
class GenerationToken:
	"""Cache generation observed before a decision was computed."""
	epoch: int
	user_generation: int


class DecisionCache:
	"""
	Memo of (user, resource, action) -> granted.

	Entries are kept in insertion order so eviction drops the oldest
	entries first. A per-user key index keeps invalidation proportional
	to the number of entries of that user.

	Writers that computed a decision outside the lock pass the
	GenerationToken they captured beforehand; the write is dropped if
	the user was invalidated (or the cache cleared) in between.
	"""

	def __init__(
		self,
		max_size: int = 10000,
		clock: Clock | None = None,
	):
		if max_size <= 0:
			raise ValueError("max_size is expected to be positive")
		self.max_size = max_size
		self.clock = clock or SystemClock()
		self._entries: OrderedDict[CacheKey, CacheEntry] = OrderedDict()
		self._by_user: dict[str, set[CacheKey]] = {}
		self._generations: dict[str, int] = {}
		self._epoch = 0
		self._lock = threading.Lock()

	def __len__(self) -> int:
		with self._lock:
			return len(self._entries)

	def get(self, user_id: str, resource: str, action: str) -> CacheEntry | None:
		"""Return a live entry; expired entries are a miss but stay until swept."""
		now = self.clock.now()
		with self._lock:
			entry = self._entries.get((user_id, resource, action))
		if entry is None or entry.is_expired(now):
			return None
		return entry

	def generation_token(self, user_id: str) -> GenerationToken:
		with self._lock:
			return GenerationToken(
				epoch=self._epoch,
				user_generation=self._generations.get(user_id, 0),
			)

	def put(self, entry: CacheEntry, token: GenerationToken | None = None) -> bool:
		"""
		Store an entry, evicting the oldest entries when full.

		Returns False if the write was dropped because `token` is stale.
		"""
		with self._lock:
			if token is not None and (
				token.epoch != self._epoch
				or token.user_generation != self._generations.get(entry.user_id, 0)
			):
				logger.debug(f"Dropped stale cache write for user {entry.user_id}")
				return False

			key = entry.key
			if key in self._entries:
				self._entries.move_to_end(key)
			else:
				while len(self._entries) >= self.max_size:
					self._pop_oldest()
				self._by_user.setdefault(entry.user_id, set()).add(key)
			self._entries[key] = entry
			return True

	def invalidate_user(self, user_id: str) -> int:
		"""Remove every entry of a user regardless of ttl."""
		with self._lock:
			self._generations[user_id] = self._generations.get(user_id, 0) + 1
			keys = self._by_user.pop(user_id, set())
			for key in keys:
				self._entries.pop(key, None)
		if keys:
			logger.debug(f"Invalidated {len(keys)} cached decisions for user {user_id}")
		return len(keys)

	def invalidate_users(self, user_ids: list[str]) -> int:
		return sum(self.invalidate_user(user_id) for user_id in user_ids)

	def clear(self) -> int:
		"""Drop every entry and invalidate in-flight writes."""
		with self._lock:
			count = len(self._entries)
			self._entries.clear()
			self._by_user.clear()
			self._generations.clear()
			self._epoch += 1
		return count

	def sweep_expired(self) -> int:
		"""
		Remove expired entries, then trim to max_size oldest first.

		Expired keys are collected from a snapshot and removed in small
		batches so concurrent lookups are never blocked for long.
		"""
		now = self.clock.now()
		with self._lock:
			snapshot = list(self._entries.items())

		expired = [key for key, entry in snapshot if entry.is_expired(now)]
		removed = 0
		for start in range(0, len(expired), SWEEP_BATCH_SIZE):
			with self._lock:
				for key in expired[start:start + SWEEP_BATCH_SIZE]:
					entry = self._entries.get(key)
					# Re-check: the key may have been refreshed since the snapshot
					if entry is not None and entry.is_expired(now):
						self._remove(key)
						removed += 1

		with self._lock:
			while len(self._entries) > self.max_size:
				self._pop_oldest()
				removed += 1

		if removed:
			logger.debug(f"Swept {removed} cached decisions")
		return removed

	def stats(self) -> CacheStats:
		now = self.clock.now()
		with self._lock:
			entries = list(self._entries.values())
		expired = sum(1 for e in entries if e.is_expired(now))
		return CacheStats(
			total_entries=len(entries),
			expired_entries=expired,
			active_entries=len(entries) - expired,
			max_size=self.max_size,
		)

	# Helpers, called with the lock held

	def _pop_oldest(self) -> None:
		key, _ = self._entries.popitem(last=False)
		self._discard_index(key)

	def _remove(self, key: CacheKey) -> None:
		self._entries.pop(key, None)
		self._discard_index(key)

	def _discard_index(self, key: CacheKey) -> None:
		user_id = key[0]
		keys = self._by_user.get(user_id)
		if keys is not None:
			keys.discard(key)
			if not keys:
				del self._by_user[user_id]
