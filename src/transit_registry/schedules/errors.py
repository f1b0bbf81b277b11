"""Error kinds raised by the schedule registry."""


class RegistryError(Exception):
	"""Base class for all registry failures."""
	kind = "registry_error"


class NotAuthorizedError(RegistryError):
	"""Caller lacks the required planner authorization or admin status."""
	kind = "not_authorized"


class NotFoundError(RegistryError):
	"""Referenced entity does not exist."""
	kind = "not_found"


class InvalidRangeError(RegistryError):
	"""A date or time ordering constraint was violated."""
	kind = "invalid_range"


class InvalidStateError(RegistryError):
	"""The entity's lifecycle state forbids the operation."""
	kind = "invalid_state"


class InvalidArgumentError(RegistryError):
	"""Malformed enum value or out-of-bounds numeric field."""
	kind = "invalid_argument"
