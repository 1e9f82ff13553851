# (c) Copyright Datacraft, 2026
"""Condition evaluators for permissions and dynamic policies."""
import logging
from datetime import datetime, timedelta
from ipaddress import ip_address, ip_network
from typing import Any, Callable, Iterable

from access_engine.directory.models import (
	AttributeMatchCondition, Condition, ConditionType, CustomCondition,
	IPRangeCondition, TimeRangeCondition, User, UserAttributeCondition,
)

logger = logging.getLogger(__name__)

# Context key carrying the caller's address
CLIENT_IP = 'client_ip'

# A window is still open at its end instant and closed right after it
WINDOW_CLOSE_DELAY = timedelta(microseconds=1)

CustomHandler = Callable[[dict[str, Any], dict[str, Any], User | None], bool]


class ConditionEvaluator:
	"""
	Evaluates permission conditions against a request context.

	The set of condition kinds is closed: each kind maps to one method in
	the dispatch table below and unknown kinds never match. Custom
	conditions fail closed unless a handler with the condition's name has
	been registered.
	"""

	def __init__(self):
		self._evaluators: dict[str, Callable[..., bool]] = {
			ConditionType.TIME_RANGE.value: self._time_range,
			ConditionType.IP_RANGE.value: self._ip_range,
			ConditionType.ATTRIBUTE_MATCH.value: self._attribute_match,
			ConditionType.USER_ATTRIBUTE.value: self._user_attribute,
			ConditionType.CUSTOM.value: self._custom,
		}
		self._custom_handlers: dict[str, CustomHandler] = {}

	def register_custom_handler(self, name: str, handler: CustomHandler) -> None:
		"""Register the handler used by custom conditions named `name`."""
		self._custom_handlers[name] = handler
		logger.info(f"Registered custom condition handler: {name}")

	def unregister_custom_handler(self, name: str) -> bool:
		return self._custom_handlers.pop(name, None) is not None

	def has_custom_handler(self, name: str) -> bool:
		return name in self._custom_handlers

	def evaluate_all(
		self,
		conditions: Iterable[Condition],
		context: dict[str, Any],
		now: datetime,
		user: User | None = None,
	) -> bool:
		"""All conditions must hold; an empty list always holds."""
		for condition in conditions:
			if not self.evaluate(condition, context, now, user):
				return False
		return True

	def next_transition(
		self,
		conditions: Iterable[Condition],
		now: datetime,
	) -> datetime | None:
		"""
		Earliest instant after `now` at which a time window opens or closes.

		None if no time range condition can change its outcome later.
		"""
		boundaries: list[datetime] = []
		for condition in conditions:
			if not isinstance(condition, TimeRangeCondition):
				continue
			if condition.start is not None and condition.start > now:
				boundaries.append(condition.start)
			if condition.end is not None and condition.end >= now:
				boundaries.append(condition.end + WINDOW_CLOSE_DELAY)
		return min(boundaries, default=None)

	def evaluate(
		self,
		condition: Condition,
		context: dict[str, Any],
		now: datetime,
		user: User | None = None,
	) -> bool:
		"""Evaluate a single condition."""
		kind = getattr(condition, 'kind', None)
		evaluator = self._evaluators.get(kind)
		if evaluator is None:
			logger.warning(f"Unknown condition kind: {kind}")
			return False
		return evaluator(condition, context, now, user)

	# Condition implementations

	def _time_range(
		self,
		condition: TimeRangeCondition,
		context: dict[str, Any],
		now: datetime,
		user: User | None,
	) -> bool:
		if condition.start is not None and now < condition.start:
			return False
		if condition.end is not None and now > condition.end:
			return False
		return True

	def _ip_range(
		self,
		condition: IPRangeCondition,
		context: dict[str, Any],
		now: datetime,
		user: User | None,
	) -> bool:
		"""Check the client address against plain addresses and CIDR ranges."""
		value = context.get(CLIENT_IP)
		if not value or not isinstance(value, str):
			return False
		if value in condition.allowed:
			return True
		try:
			ip = ip_address(value)
		except ValueError:
			logger.warning(f"Invalid client IP in request context: {value}")
			return False
		for allowed in condition.allowed:
			if '/' not in allowed:
				continue
			try:
				if ip in ip_network(allowed, strict=False):
					return True
			except ValueError as e:
				logger.error(f"Invalid CIDR in IP range condition: {e}")
		return False

	def _attribute_match(
		self,
		condition: AttributeMatchCondition,
		context: dict[str, Any],
		now: datetime,
		user: User | None,
	) -> bool:
		if condition.key not in context:
			return False
		return _same_value(context[condition.key], condition.expected)

	def _user_attribute(
		self,
		condition: UserAttributeCondition,
		context: dict[str, Any],
		now: datetime,
		user: User | None,
	) -> bool:
		if user is None or condition.key not in user.metadata:
			return False
		return _same_value(user.metadata[condition.key], condition.expected)

	def _custom(
		self,
		condition: CustomCondition,
		context: dict[str, Any],
		now: datetime,
		user: User | None,
	) -> bool:
		handler = self._custom_handlers.get(condition.handler)
		if handler is None:
			logger.warning(f"No handler registered for custom condition: {condition.handler}")
			return False
		try:
			return bool(handler(dict(condition.parameters), context, user))
		except Exception:
			logger.exception(f"Custom condition handler failed: {condition.handler}")
			return False


def _same_value(actual: Any, expected: Any) -> bool:
	"""Equality that also requires identical types (1 != True != 1.0)."""
	return type(actual) is type(expected) and actual == expected
