# (c) Copyright Datacraft, 2026
"""Dynamic policy models."""
import re
from datetime import datetime

from pydantic import BaseModel, Field, ConfigDict, field_validator

from access_engine.directory.models import Condition
from access_engine.utils import utc_now


class DynamicPolicy(BaseModel):
	"""
	Pattern-based grant that applies to every principal.

	A dynamic policy grants an action when the resource fully matches
	`resource_pattern`, the action is listed, and every condition holds.
	"""
	model_config = ConfigDict(frozen=True)

	id: str
	name: str | None = None
	description: str | None = None
	resource_pattern: str
	actions: frozenset[str] = frozenset()
	conditions: tuple[Condition, ...] = ()
	is_active: bool = True
	priority: int = 0
	created_at: datetime = Field(default_factory=utc_now)

	@field_validator('resource_pattern')
	@classmethod
	def _compiles(cls, value: str) -> str:
		try:
			re.compile(value)
		except re.error as e:
			raise ValueError(f"Invalid resource pattern: {e}") from e
		return value

	def matches_resource(self, resource: str) -> bool:
		return re.fullmatch(self.resource_pattern, resource) is not None
