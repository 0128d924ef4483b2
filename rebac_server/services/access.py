# (c) Copyright Datacraft, 2026
"""Access service wiring store, userset rules, checker and writer."""
import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path

from rebac_server.config import Settings, StoreBackend
from rebac_server.db.engine import make_engine, make_session_factory
from rebac_server.exceptions import ConfigError
from rebac_server.rebac.graph import RelationshipChecker, CheckResult
from rebac_server.rebac.sql_store import SqlTupleStore
from rebac_server.rebac.tuples import InMemoryTupleStore, TupleStore
from rebac_server.rebac.usersets import UsersetRules, load_usersets_file
from rebac_server.rebac.writer import RelationshipWriter, TupleImporter, ImportReport

logger = logging.getLogger(__name__)


def create_store(settings: Settings) -> TupleStore:
	"""Build the tuple store selected by settings."""
	if settings.store_backend == StoreBackend.SQL:
		if not settings.db_url:
			raise ConfigError("db_url is required for the sql store backend")
		store = SqlTupleStore(
			make_session_factory(make_engine(settings.db_url)),
			timeout=settings.store_timeout,
			isolation_level=settings.snapshot_isolation,
		)
		store.create_schema()
		return store
	return InMemoryTupleStore()


class AccessService:
	"""
	Entry point for access checks and relationship management.

	`check_access` is synchronous and runs the engine on its own event
	loop; async callers (the HTTP app) use `acheck_access`.
	"""

	def __init__(
		self,
		store: TupleStore,
		rules: UsersetRules,
		max_concurrency: int = 16,
		max_depth: int | None = None,
		delimiter: str = '|',
	):
		self.store = store
		self.checker = RelationshipChecker(
			store, rules, max_concurrency=max_concurrency, max_depth=max_depth,
		)
		self.writer = RelationshipWriter(store)
		self.importer = TupleImporter(self.writer)
		self.delimiter = delimiter

	@classmethod
	def from_settings(cls, settings: Settings) -> "AccessService":
		if settings.usersets_path:
			rules = load_usersets_file(settings.usersets_path, settings.usersets_delimiter)
		else:
			logger.warning("No usersets configured; every check will be denied")
			rules = UsersetRules()
		return cls(
			create_store(settings),
			rules,
			max_concurrency=settings.max_concurrency,
			max_depth=settings.max_depth,
			delimiter=settings.usersets_delimiter,
		)

	@property
	def rules(self) -> UsersetRules:
		return self.checker.rules

	def check_access(self, principal_id, resource_id, namespace, relation) -> bool:
		"""Synchronous access check. Must not be called from a running event loop."""
		return asyncio.run(
			self.checker.check_access(principal_id, resource_id, namespace, relation)
		)

	async def acheck_access(self, principal_id, resource_id, namespace, relation) -> bool:
		return await self.checker.check_access(principal_id, resource_id, namespace, relation)

	async def explain(self, principal_id, resource_id, namespace, relation) -> CheckResult:
		return await self.checker.check(principal_id, resource_id, namespace, relation)

	def reload_rules(self, raw: Mapping) -> UsersetRules:
		"""Build a new rule table from a nested mapping and swap it in."""
		rules = UsersetRules.load(raw, delimiter=self.delimiter)
		self.checker.replace_rules(rules)
		return rules

	def reload_rules_file(self, path: str | Path) -> UsersetRules:
		rules = load_usersets_file(path, delimiter=self.delimiter)
		self.checker.replace_rules(rules)
		return rules

	async def seed(self, path: str | Path) -> ImportReport:
		return await self.importer.import_file(path)
