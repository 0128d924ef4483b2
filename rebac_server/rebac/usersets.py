# (c) Copyright Datacraft, 2026
"""Userset rewrite rules: which raw edge labels satisfy a relation."""
import logging
from collections.abc import Mapping
from itertools import count
from pathlib import Path

import yaml

from rebac_server.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = '|'

_versions = count(1)


def _split_leaf(key: str, value, delimiter: str) -> frozenset[str]:
	"""Turn a leaf value into a set of normalized relation names."""
	if isinstance(value, str):
		items = value.split(delimiter)
	elif isinstance(value, (list, tuple, set, frozenset)):
		items = list(value)
		if not all(isinstance(item, str) for item in items):
			raise ConfigError(f"Userset '{key}' must list relation names as strings")
	else:
		raise ConfigError(
			f"Userset '{key}' must be a string or a list of strings, got {type(value).__name__}"
		)
	return frozenset(item.strip().lower() for item in items if item.strip())


def flatten_usersets(
	raw: Mapping,
	prefix: str = '',
	delimiter: str = DEFAULT_DELIMITER,
) -> dict[str, frozenset[str]]:
	"""
	Flatten a nested mapping into dotted `namespace.relation` keys.

	Example:
		{'doc': {'viewer': 'viewer | owner'}}
		-> {'doc.viewer': frozenset({'viewer', 'owner'})}

	Nesting may go arbitrarily deep; every intermediate key becomes part
	of the namespace. The last segment is the relation and is
	lower-cased like the relation names in the values.
	"""
	result: dict[str, frozenset[str]] = {}
	for key, value in raw.items():
		segment = str(key).strip()
		if not segment:
			raise ConfigError(f"Empty key under '{prefix or '<root>'}'")

		if isinstance(value, Mapping):
			nested_prefix = f"{prefix}.{segment}" if prefix else segment
			items = flatten_usersets(value, nested_prefix, delimiter).items()
		else:
			relation = segment.lower()
			new_key = f"{prefix}.{relation}" if prefix else relation
			items = [(new_key, _split_leaf(new_key, value, delimiter))]

		for new_key, relations in items:
			if new_key in result:
				raise ConfigError(f"Duplicate userset key '{new_key}'")
			result[new_key] = relations
	return result


class UsersetRules:
	"""
	Immutable rewrite rule table.

	Maps `namespace.relation` to the set of edge labels accepted as
	satisfying it. Replace the whole instance to reload; never mutate.
	"""

	def __init__(self, rules: Mapping[str, frozenset[str]] | None = None):
		self._rules = {key: frozenset(value) for key, value in (rules or {}).items()}
		self.version = next(_versions)

	@classmethod
	def load(cls, raw: Mapping, delimiter: str = DEFAULT_DELIMITER) -> "UsersetRules":
		"""Build a table from a nested mapping (parsed YAML, JSON, ...)."""
		if raw is None:
			raw = {}
		if not isinstance(raw, Mapping):
			raise ConfigError(f"Usersets must be a mapping, got {type(raw).__name__}")
		if not delimiter:
			raise ConfigError("Userset delimiter must be non-empty")
		rules = cls(flatten_usersets(raw, delimiter=delimiter))
		logger.info(f"Loaded {len(rules)} userset rules (version {rules.version})")
		return rules

	@classmethod
	def from_yaml(cls, text: str, delimiter: str = DEFAULT_DELIMITER) -> "UsersetRules":
		try:
			raw = yaml.safe_load(text)
		except yaml.YAMLError as exc:
			raise ConfigError(f"Failed to parse usersets YAML: {exc}") from exc
		return cls.load(raw, delimiter=delimiter)

	def lookup(self, namespace: str, relation: str | None) -> frozenset[str]:
		"""Accepted labels for (namespace, relation); empty if unconfigured."""
		if not namespace or not relation:
			return frozenset()
		return self._rules.get(f"{namespace}.{relation.strip().lower()}", frozenset())

	def keys(self) -> list[str]:
		return sorted(self._rules)

	def as_dict(self) -> dict[str, list[str]]:
		return {key: sorted(self._rules[key]) for key in self.keys()}

	def __contains__(self, key: str) -> bool:
		return key in self._rules

	def __len__(self):
		return len(self._rules)

	def __repr__(self):
		return f"UsersetRules(version={self.version}, rules={len(self)})"


def load_usersets_file(
	path: str | Path,
	delimiter: str = DEFAULT_DELIMITER,
) -> UsersetRules:
	"""Load a rule table from a YAML file."""
	path = Path(path)
	try:
		text = path.read_text(encoding='utf-8')
	except OSError as exc:
		raise ConfigError(f"Cannot read usersets file {path}: {exc}") from exc
	return UsersetRules.from_yaml(text, delimiter=delimiter)
