# (c) Copyright Datacraft, 2026
from .exceptions import ValidationError

_RESERVED = frozenset(":#@")


def raise_on_empty(**kwargs):
    """Raises ValidationError exception if at least one value of the
    key in kwargs dictionary is None or an empty string
    """
    for key, value in kwargs.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(
                 f"{key} is expected to be non-empty"
            )


def parse_id(value, field: str = "id") -> int:
    """Coerce a node identifier to a non-negative int.

    Accepts ints and strings of ASCII digits. Booleans, negative numbers
    and anything else are rejected.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a non-negative integer, got {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValidationError(f"{field} must be a non-negative integer, got {value!r}")
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.isascii() and text.isdigit():
            return int(text)
    raise ValidationError(f"{field} must be a non-negative integer, got {value!r}")


def normalize_namespace(value, field: str = "namespace") -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string, got {value!r}")
    raise_on_empty(**{field: value})
    text = value.strip()
    if _RESERVED.intersection(text) or any(ch.isspace() for ch in text):
        raise ValidationError(f"{field} contains reserved characters: {value!r}")
    return text


def normalize_relation(value, field: str = "relation") -> str:
    """Canonical form of a relation name: stripped and lower-cased."""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string, got {value!r}")
    raise_on_empty(**{field: value})
    text = value.strip().lower()
    if '.' in text or _RESERVED.intersection(text) or any(ch.isspace() for ch in text):
        raise ValidationError(f"{field} contains reserved characters: {value!r}")
    return text
