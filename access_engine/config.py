import logging

from datetime import timedelta
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Decision cache
    cache_enabled: bool = True
    cache_ttl_ms: int = Field(gt=0, default=5 * 60 * 1000)
    max_cache_size: int = Field(gt=0, default=10000)

    # Sessions
    session_ttl_ms: int = Field(gt=0, default=30 * 60 * 1000)

    # Audit trail
    audit_enabled: bool = True
    audit_retention_ms: int = Field(gt=0, default=30 * 24 * 60 * 60 * 1000)
    max_audit_entries: int = Field(gt=0, default=100000)

    # Lifecycle
    maintenance_interval_ms: int = Field(gt=0, default=60 * 60 * 1000)
    start_maintenance: bool = Field(default=True, description="Run the periodic cleanup task")
    seed_defaults: bool = Field(default=True, description="Create default roles and permissions")

    model_config = SettingsConfigDict(env_prefix='ace_')

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(milliseconds=self.cache_ttl_ms)

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(milliseconds=self.session_ttl_ms)

    @property
    def audit_retention(self) -> timedelta:
        return timedelta(milliseconds=self.audit_retention_ms)

    @property
    def maintenance_interval(self) -> timedelta:
        return timedelta(milliseconds=self.maintenance_interval_ms)


@lru_cache()
def get_settings():
    return Settings()
