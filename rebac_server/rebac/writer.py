# (c) Copyright Datacraft, 2026
"""Mutation API and bulk tuple import."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from rebac_server.exceptions import ValidationError
from .tuples import RelationTuple, TupleStore

logger = logging.getLogger(__name__)


class RelationshipWriter:
	"""Create and delete relationships in a tuple store."""

	def __init__(self, store: TupleStore):
		self.store = store

	async def create_direct_relation(self, principal_id, relation, resource_id, namespace) -> RelationTuple:
		"""Grant `relation` on namespace:resource_id to a principal."""
		edge = await self.store.upsert_direct_edge(principal_id, relation, resource_id, namespace)
		return RelationTuple.from_edge(edge)

	async def delete_direct_relation(self, principal_id, relation, resource_id, namespace) -> bool:
		return await self.store.delete_direct_edge(principal_id, relation, resource_id, namespace)

	async def create_resource_relation(
		self,
		from_id,
		from_namespace,
		from_relation,
		to_id,
		to_namespace,
		to_relation,
	) -> RelationTuple:
		"""
		Grant `to_relation` on to_namespace:to_id to everyone holding
		`from_relation` on from_namespace:from_id.
		"""
		edge = await self.store.upsert_resource_edge(
			from_id, from_namespace, from_relation,
			to_id, to_namespace, to_relation,
		)
		return RelationTuple.from_edge(edge)

	async def delete_resource_relation(
		self,
		from_id,
		from_namespace,
		from_relation,
		to_id,
		to_namespace,
		to_relation,
	) -> bool:
		return await self.store.delete_resource_edge(
			from_id, from_namespace, from_relation,
			to_id, to_namespace, to_relation,
		)

	async def delete_principal(self, principal_id) -> int:
		return await self.store.delete_principal_node(principal_id)

	async def delete_resource(self, namespace, resource_id) -> int:
		return await self.store.delete_resource_node(namespace, resource_id)

	async def write_tuple(self, tuple_str: str) -> tuple[RelationTuple, bool]:
		"""
		Write a tuple given in text form.

		Returns the parsed tuple and whether the store changed.
		"""
		relation_tuple = RelationTuple.parse(tuple_str)
		created = await self.store.upsert(relation_tuple.to_edge())
		return relation_tuple, created

	async def delete_tuple(self, tuple_str: str) -> tuple[RelationTuple, bool]:
		relation_tuple = RelationTuple.parse(tuple_str)
		deleted = await self.store.delete(relation_tuple.to_edge())
		return relation_tuple, deleted


@dataclass
class SkippedLine:
	"""A line the importer could not apply."""
	line_number: int
	text: str
	reason: str


@dataclass
class ImportReport:
	"""Outcome of a bulk import."""
	created: int = 0
	unchanged: int = 0
	skipped: list[SkippedLine] = field(default_factory=list)

	@property
	def applied(self) -> int:
		return self.created + self.unchanged

	@property
	def ok(self) -> bool:
		return not self.skipped


class TupleImporter:
	"""
	Apply tuples line by line.

	Blank lines and lines starting with '#' are ignored. Each line is
	applied on its own: a malformed line is reported and skipped, and
	lines already written are kept. Store failures abort the import.
	"""

	COMMENT = '#'

	def __init__(self, writer: RelationshipWriter):
		self.writer = writer

	async def import_lines(self, lines: Iterable[str]) -> ImportReport:
		report = ImportReport()
		for line_number, raw in enumerate(lines, start=1):
			line = raw.strip()
			if not line or line.startswith(self.COMMENT):
				continue
			try:
				_, created = await self.writer.write_tuple(line)
			except ValidationError as exc:
				logger.warning(f"Skipping line {line_number} {line!r}: {exc}")
				report.skipped.append(SkippedLine(line_number, line, str(exc)))
				continue
			if created:
				report.created += 1
			else:
				report.unchanged += 1

		logger.info(
			f"Imported tuples: {report.created} created, {report.unchanged} unchanged, "
			f"{len(report.skipped)} skipped"
		)
		return report

	async def import_file(self, path: str | Path) -> ImportReport:
		path = Path(path)
		with path.open('r', encoding='utf-8') as fh:
			lines = fh.read().splitlines()
		logger.info(f"Importing tuples from {path}")
		return await self.import_lines(lines)
