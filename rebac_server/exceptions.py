# (c) Copyright Datacraft, 2026
"""Error taxonomy for the relationship engine."""


class RebacError(Exception):
	"""Base class for all engine errors."""


class ValidationError(RebacError, ValueError):
	"""Malformed identifier, namespace or relation name."""


class ConfigError(RebacError):
	"""Userset rule table could not be parsed or loaded."""


class StoreError(RebacError):
	"""Backing store failed."""


class StoreUnavailable(StoreError):
	"""Backing store could not be reached within its deadline."""
