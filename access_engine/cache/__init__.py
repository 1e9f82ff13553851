# (c) Copyright Datacraft, 2026
"""Decision cache."""
from .decision_cache import DecisionCache, CacheEntry, CacheStats, GenerationToken

__all__ = [
	'DecisionCache',
	'CacheEntry',
	'CacheStats',
	'GenerationToken',
]
