# (c) Copyright Datacraft, 2026
"""Default permissions and roles seeded on initialization."""
from typing import Any

SYSTEM_ACTOR = 'system'

DEFAULT_PERMISSIONS: list[dict[str, Any]] = [
	{
		'permission_id': 'read_data',
		'name': 'Read data',
		'description': 'Read system data',
		'resource': 'data',
		'actions': {'read', 'view'},
	},
	{
		'permission_id': 'write_data',
		'name': 'Write data',
		'description': 'Write system data',
		'resource': 'data',
		'actions': {'write', 'create', 'update'},
	},
	{
		'permission_id': 'delete_data',
		'name': 'Delete data',
		'description': 'Delete system data',
		'resource': 'data',
		'actions': {'delete'},
	},
]

DEFAULT_ROLES: list[dict[str, Any]] = [
	{
		'role_id': 'admin',
		'name': 'Administrator',
		'description': 'System administrator',
		'permission_ids': {'read_data', 'write_data', 'delete_data'},
	},
	{
		'role_id': 'user',
		'name': 'User',
		'description': 'Regular user',
		'permission_ids': {'read_data'},
	},
	{
		'role_id': 'editor',
		'name': 'Editor',
		'description': 'Can read and modify data',
		'permission_ids': {'read_data', 'write_data'},
	},
]
