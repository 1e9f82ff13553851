# (c) Copyright Datacraft, 2026
"""Error taxonomy for the access control engine."""
from enum import Enum


class ErrorKind(str, Enum):
	"""Kinds of errors surfaced to engine callers."""
	NOT_FOUND = 'not_found'
	ALREADY_EXISTS = 'already_exists'
	INACTIVE = 'inactive'
	SESSION_INVALID = 'session_invalid'
	SYSTEM_NOT_READY = 'system_not_ready'
	NO_OP = 'no_op'
	INVALID_ARGUMENT = 'invalid_argument'
	UNEXPECTED = 'unexpected'


class AccessControlError(Exception):
	"""Base access control error."""
	kind: ErrorKind = ErrorKind.UNEXPECTED


class NotFoundError(AccessControlError):
	"""User, role or permission does not exist."""
	kind = ErrorKind.NOT_FOUND


class AlreadyExistsError(AccessControlError):
	"""Entity id is already taken."""
	kind = ErrorKind.ALREADY_EXISTS


class InactiveError(AccessControlError):
	"""Entity is disabled."""
	kind = ErrorKind.INACTIVE


class NoOpError(AccessControlError):
	"""Mutation would not change anything."""
	kind = ErrorKind.NO_OP


class SystemNotReadyError(AccessControlError):
	"""Engine is not in the READY state."""
	kind = ErrorKind.SYSTEM_NOT_READY
