# (c) Copyright Datacraft, 2026
"""In-memory entity directory for users, roles and permissions."""
import logging
import threading
from datetime import datetime
from typing import Any, Iterable

from access_engine.errors import AlreadyExistsError, NoOpError, NotFoundError
from access_engine.utils import raise_on_empty, utc_now
from .models import Condition, DirectoryCounts, Permission, Role, User

logger = logging.getLogger(__name__)


class EntityDirectory:
	"""
	Store and look up users, roles and permissions.

	Provides CRUD operations only; entitlement rules live in the policy
	evaluator. Every method runs under one re-entrant lock and stored
	entities are immutable, so lookups may be shared across threads.
	"""

	def __init__(self):
		self._users: dict[str, User] = {}
		self._roles: dict[str, Role] = {}
		self._permissions: dict[str, Permission] = {}
		self._lock = threading.RLock()

	# Creation

	def create_permission(
		self,
		permission_id: str,
		resource: str,
		actions: Iterable[str],
		conditions: Iterable[Condition] = (),
		name: str | None = None,
		description: str | None = None,
		created_at: datetime | None = None,
	) -> Permission:
		"""Create a new permission."""
		raise_on_empty(permission_id=permission_id, resource=resource)
		if isinstance(actions, str):
			actions = (actions,)
		permission = Permission(
			id=permission_id,
			name=name,
			description=description,
			resource=resource,
			actions=frozenset(actions),
			conditions=tuple(conditions),
			created_at=created_at or utc_now(),
		)
		with self._lock:
			if permission_id in self._permissions:
				raise AlreadyExistsError(f"Permission already exists: {permission_id}")
			self._permissions[permission_id] = permission
		return permission

	def create_role(
		self,
		role_id: str,
		permission_ids: Iterable[str] = (),
		name: str | None = None,
		description: str | None = None,
		metadata: dict[str, Any] | None = None,
		created_at: datetime | None = None,
	) -> Role:
		"""Create a new role referencing existing permissions."""
		raise_on_empty(role_id=role_id)
		permission_ids = frozenset(permission_ids)
		with self._lock:
			if role_id in self._roles:
				raise AlreadyExistsError(f"Role already exists: {role_id}")
			self._require_permissions(permission_ids)
			role = Role(
				id=role_id,
				name=name,
				description=description,
				permission_ids=permission_ids,
				metadata=dict(metadata or {}),
				created_at=created_at or utc_now(),
			)
			self._roles[role_id] = role
		return role

	def create_user(
		self,
		user_id: str,
		role_ids: Iterable[str] = (),
		permission_ids: Iterable[str] = (),
		username: str | None = None,
		email: str | None = None,
		is_active: bool = True,
		metadata: dict[str, Any] | None = None,
		created_at: datetime | None = None,
	) -> User:
		"""Create a new user referencing existing roles and permissions."""
		raise_on_empty(user_id=user_id)
		role_ids = frozenset(role_ids)
		permission_ids = frozenset(permission_ids)
		with self._lock:
			if user_id in self._users:
				raise AlreadyExistsError(f"User already exists: {user_id}")
			missing = role_ids - self._roles.keys()
			if missing:
				raise NotFoundError(f"Role not found: {', '.join(sorted(missing))}")
			self._require_permissions(permission_ids)
			user = User(
				id=user_id,
				username=username,
				email=email,
				role_ids=role_ids,
				permission_ids=permission_ids,
				is_active=is_active,
				metadata=dict(metadata or {}),
				created_at=created_at or utc_now(),
			)
			self._users[user_id] = user
		return user

	# Lookups

	def get_user(self, user_id: str) -> User | None:
		with self._lock:
			return self._users.get(user_id)

	def get_role(self, role_id: str) -> Role | None:
		with self._lock:
			return self._roles.get(role_id)

	def get_permission(self, permission_id: str) -> Permission | None:
		with self._lock:
			return self._permissions.get(permission_id)

	def list_users(self, active_only: bool = False) -> list[User]:
		with self._lock:
			users = list(self._users.values())
		return [u for u in users if u.is_active or not active_only]

	def list_roles(self, active_only: bool = False) -> list[Role]:
		with self._lock:
			roles = list(self._roles.values())
		return [r for r in roles if r.is_active or not active_only]

	def list_permissions(self, active_only: bool = False) -> list[Permission]:
		with self._lock:
			permissions = list(self._permissions.values())
		return [p for p in permissions if p.is_active or not active_only]

	def resolve_grants(
		self,
		user: User,
	) -> list[tuple[str | None, Permission]]:
		"""
		Resolve the permissions a user may draw on.

		Returns (role_id, permission) pairs; role_id is None for direct
		grants. Inactive roles are skipped, dangling ids are ignored.
		Permission activity is left to the evaluator.
		"""
		with self._lock:
			grants: list[tuple[str | None, Permission]] = []
			for permission_id in sorted(user.permission_ids):
				permission = self._permissions.get(permission_id)
				if permission is not None:
					grants.append((None, permission))
			for role_id in sorted(user.role_ids):
				role = self._roles.get(role_id)
				if role is None or not role.is_active:
					continue
				for permission_id in sorted(role.permission_ids):
					permission = self._permissions.get(permission_id)
					if permission is not None:
						grants.append((role_id, permission))
			return grants

	def users_with_role(self, role_id: str) -> list[str]:
		with self._lock:
			return [u.id for u in self._users.values() if role_id in u.role_ids]

	def users_affected_by_permission(self, permission_id: str) -> list[str]:
		"""Ids of users holding the permission directly or through a role."""
		with self._lock:
			role_ids = {
				r.id for r in self._roles.values()
				if permission_id in r.permission_ids
			}
			return [
				u.id for u in self._users.values()
				if permission_id in u.permission_ids or u.role_ids & role_ids
			]

	def counts(self) -> DirectoryCounts:
		with self._lock:
			return DirectoryCounts(
				total_users=len(self._users),
				active_users=sum(1 for u in self._users.values() if u.is_active),
				total_roles=len(self._roles),
				active_roles=sum(1 for r in self._roles.values() if r.is_active),
				total_permissions=len(self._permissions),
				active_permissions=sum(1 for p in self._permissions.values() if p.is_active),
			)

	# Mutations

	def assign_role(self, user_id: str, role_id: str) -> User:
		"""Add a role to a user."""
		with self._lock:
			user = self._require_user(user_id)
			self._require_role(role_id)
			if role_id in user.role_ids:
				raise NoOpError(f"User {user_id} already has role {role_id}")
			user = user.model_copy(update={'role_ids': user.role_ids | {role_id}})
			self._users[user_id] = user
		return user

	def revoke_role(self, user_id: str, role_id: str) -> User:
		"""Remove a role from a user."""
		with self._lock:
			user = self._require_user(user_id)
			self._require_role(role_id)
			if role_id not in user.role_ids:
				raise NoOpError(f"User {user_id} does not have role {role_id}")
			user = user.model_copy(update={'role_ids': user.role_ids - {role_id}})
			self._users[user_id] = user
		return user

	def grant_permission(self, user_id: str, permission_id: str) -> User:
		"""Add a direct permission to a user."""
		with self._lock:
			user = self._require_user(user_id)
			self._require_permissions({permission_id})
			if permission_id in user.permission_ids:
				raise NoOpError(f"User {user_id} already has permission {permission_id}")
			user = user.model_copy(
				update={'permission_ids': user.permission_ids | {permission_id}}
			)
			self._users[user_id] = user
		return user

	def revoke_permission(self, user_id: str, permission_id: str) -> User:
		"""Remove a direct permission from a user."""
		with self._lock:
			user = self._require_user(user_id)
			if permission_id not in user.permission_ids:
				raise NoOpError(f"User {user_id} does not have permission {permission_id}")
			user = user.model_copy(
				update={'permission_ids': user.permission_ids - {permission_id}}
			)
			self._users[user_id] = user
		return user

	def set_user_active(self, user_id: str, is_active: bool) -> User:
		with self._lock:
			user = self._require_user(user_id)
			if user.is_active == is_active:
				raise NoOpError(f"User {user_id} is_active is already {is_active}")
			user = user.model_copy(update={'is_active': is_active})
			self._users[user_id] = user
		return user

	def set_role_active(self, role_id: str, is_active: bool) -> Role:
		with self._lock:
			role = self._require_role(role_id)
			if role.is_active == is_active:
				raise NoOpError(f"Role {role_id} is_active is already {is_active}")
			role = role.model_copy(update={'is_active': is_active})
			self._roles[role_id] = role
		return role

	def set_permission_active(self, permission_id: str, is_active: bool) -> Permission:
		with self._lock:
			permission = self._permissions.get(permission_id)
			if permission is None:
				raise NotFoundError(f"Permission not found: {permission_id}")
			if permission.is_active == is_active:
				raise NoOpError(f"Permission {permission_id} is_active is already {is_active}")
			permission = permission.model_copy(update={'is_active': is_active})
			self._permissions[permission_id] = permission
		return permission

	def delete_permission(self, permission_id: str) -> Permission:
		"""Delete a permission and strip every reference to it."""
		with self._lock:
			permission = self._permissions.pop(permission_id, None)
			if permission is None:
				raise NotFoundError(f"Permission not found: {permission_id}")
			for role in list(self._roles.values()):
				if permission_id in role.permission_ids:
					self._roles[role.id] = role.model_copy(
						update={'permission_ids': role.permission_ids - {permission_id}}
					)
			for user in list(self._users.values()):
				if permission_id in user.permission_ids:
					self._users[user.id] = user.model_copy(
						update={'permission_ids': user.permission_ids - {permission_id}}
					)
		logger.info(f"Deleted permission {permission_id}")
		return permission

	def record_login(self, user_id: str, at: datetime | None = None) -> User:
		with self._lock:
			user = self._require_user(user_id)
			user = user.model_copy(update={'last_login_at': at or utc_now()})
			self._users[user_id] = user
		return user

	# Helpers, called with the lock held

	def _require_user(self, user_id: str) -> User:
		user = self._users.get(user_id)
		if user is None:
			raise NotFoundError(f"User not found: {user_id}")
		return user

	def _require_role(self, role_id: str) -> Role:
		role = self._roles.get(role_id)
		if role is None:
			raise NotFoundError(f"Role not found: {role_id}")
		return role

	def _require_permissions(self, permission_ids: frozenset[str] | set[str]) -> None:
		missing = set(permission_ids) - self._permissions.keys()
		if missing:
			raise NotFoundError(f"Permission not found: {', '.join(sorted(missing))}")
