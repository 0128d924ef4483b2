# (c) Copyright Datacraft, 2026
"""Relationship tuples storage and management."""
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Mapping, Union

from rebac_server.exceptions import ValidationError
from rebac_server.utils import parse_id, normalize_namespace, normalize_relation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
	"""A user. Principals only ever appear as the origin of an edge."""
	id: int

	def __str__(self):
		return str(self.id)


@dataclass(frozen=True)
class Resource:
	"""An object in a namespace, e.g. doc:1 or group:5."""
	namespace: str
	id: int

	def __str__(self):
		return f"{self.namespace}:{self.id}"


Node = Union[Principal, Resource]


@dataclass(frozen=True)
class Edge:
	"""
	Directed, labeled relationship between two nodes.

	Direct grants run Principal -> Resource and carry no source relation.
	Userset grants run Resource -> Resource; `source_relation` names the
	relation a subject must hold on `source` for the grant to apply.
	"""
	source: Node
	label: str
	target: Resource
	source_relation: str | None = None

	def __str__(self):
		subject = str(self.source)
		if self.source_relation:
			subject += f"#{self.source_relation}"
		return f"{self.target}#{self.label}@{subject}"


def direct_edge(principal_id, relation, resource_id, namespace) -> Edge:
	"""Build a validated Principal -> Resource edge."""
	return Edge(
		source=Principal(parse_id(principal_id, 'principal_id')),
		label=normalize_relation(relation),
		target=Resource(normalize_namespace(namespace), parse_id(resource_id, 'resource_id')),
	)


def resource_edge(
	from_resource_id,
	from_namespace,
	source_relation,
	to_resource_id,
	to_namespace,
	to_relation,
) -> Edge:
	"""Build a validated Resource -> Resource (userset) edge."""
	return Edge(
		source=Resource(
			normalize_namespace(from_namespace, 'from_namespace'),
			parse_id(from_resource_id, 'from_resource_id'),
		),
		label=normalize_relation(to_relation, 'to_relation'),
		target=Resource(
			normalize_namespace(to_namespace, 'to_namespace'),
			parse_id(to_resource_id, 'to_resource_id'),
		),
		source_relation=normalize_relation(source_relation, 'source_relation'),
	)


def validate_edge(edge: Edge) -> Edge:
	"""Rebuild a caller-supplied edge in canonical form."""
	if not isinstance(edge, Edge):
		raise ValidationError(f"Expected an Edge, got {edge!r}")
	if not isinstance(edge.target, Resource):
		raise ValidationError(f"Edge target must be a resource: {edge!r}")
	if isinstance(edge.source, Principal):
		if edge.source_relation is not None:
			raise ValidationError(f"Direct edges carry no source relation: {edge!r}")
		return direct_edge(edge.source.id, edge.label, edge.target.id, edge.target.namespace)
	if isinstance(edge.source, Resource):
		return resource_edge(
			edge.source.id, edge.source.namespace, edge.source_relation,
			edge.target.id, edge.target.namespace, edge.label,
		)
	raise ValidationError(f"Edge source must be a principal or resource: {edge!r}")


@dataclass(frozen=True)
class RelationTuple:
	"""
	Zanzibar-style relation tuple.

	Format: namespace:id#relation@subject
	Example: doc:1#viewer@2
	         doc:1#viewer@group:5#member

	A bare integer subject is a principal (direct grant). A
	`namespace:id#relation` subject is a userset.
	"""
	resource: Resource
	relation: str
	subject: Node
	subject_relation: str | None = None

	def __str__(self):
		subject = str(self.subject)
		if self.subject_relation:
			subject += f"#{self.subject_relation}"
		return f"{self.resource}#{self.relation}@{subject}"

	@classmethod
	def parse(cls, tuple_str: str) -> "RelationTuple":
		"""Parse tuple from string format."""
		if not isinstance(tuple_str, str):
			raise ValidationError(f"Tuple must be a string, got {tuple_str!r}")
		text = tuple_str.strip()
		if text.count('@') != 1:
			raise ValidationError(f"Tuple must contain exactly one '@': {tuple_str!r}")

		object_part, subject_part = text.split('@')
		obj, relation = cls._parse_userset(object_part, tuple_str)

		if '#' not in subject_part and ':' not in subject_part:
			return cls(
				resource=obj,
				relation=relation,
				subject=Principal(parse_id(subject_part, 'subject')),
			)

		subject, subject_relation = cls._parse_userset(subject_part, tuple_str)
		return cls(
			resource=obj,
			relation=relation,
			subject=subject,
			subject_relation=subject_relation,
		)

	@staticmethod
	def _parse_userset(part: str, original: str) -> tuple[Resource, str]:
		"""Parse `namespace:id#relation`."""
		if part.count('#') != 1:
			raise ValidationError(f"Expected namespace:id#relation in {original!r}")
		obj, relation = part.split('#')
		if obj.count(':') != 1:
			raise ValidationError(f"Expected namespace:id in {original!r}")
		namespace, object_id = obj.split(':')
		return (
			Resource(normalize_namespace(namespace), parse_id(object_id, 'resource_id')),
			normalize_relation(relation),
		)

	@classmethod
	def from_edge(cls, edge: Edge) -> "RelationTuple":
		return cls(
			resource=edge.target,
			relation=edge.label,
			subject=edge.source,
			subject_relation=edge.source_relation,
		)

	def to_edge(self) -> Edge:
		return Edge(
			source=self.subject,
			label=self.relation,
			target=self.resource,
			source_relation=self.subject_relation,
		)


class TupleReader(ABC):
	"""Read side of one consistent view of the graph."""

	@abstractmethod
	async def outgoing_edges(self, node: Node) -> frozenset[Edge]:
		"""Edges leaving `node`. Unknown nodes have none."""


class TupleStore(ABC):
	"""
	Store and query relationship edges.

	Validation and normalization happen here; backends only see
	well-formed `Edge` values.
	"""

	async def upsert_direct_edge(self, principal_id, relation, resource_id, namespace) -> Edge:
		"""Create a direct grant. Writing an existing edge is a no-op."""
		edge = direct_edge(principal_id, relation, resource_id, namespace)
		await self._upsert(edge)
		return edge

	async def upsert_resource_edge(
		self,
		from_resource_id,
		from_namespace,
		source_relation,
		to_resource_id,
		to_namespace,
		to_relation,
	) -> Edge:
		"""Create a userset grant labeled `to_relation`."""
		edge = resource_edge(
			from_resource_id, from_namespace, source_relation,
			to_resource_id, to_namespace, to_relation,
		)
		await self._upsert(edge)
		return edge

	async def delete_direct_edge(self, principal_id, relation, resource_id, namespace) -> bool:
		return await self._delete(direct_edge(principal_id, relation, resource_id, namespace))

	async def delete_resource_edge(
		self,
		from_resource_id,
		from_namespace,
		source_relation,
		to_resource_id,
		to_namespace,
		to_relation,
	) -> bool:
		return await self._delete(resource_edge(
			from_resource_id, from_namespace, source_relation,
			to_resource_id, to_namespace, to_relation,
		))

	async def delete_principal_node(self, principal_id) -> int:
		"""Delete a principal and every edge leaving it."""
		return await self._delete_node(Principal(parse_id(principal_id, 'principal_id')))

	async def delete_resource_node(self, namespace, resource_id) -> int:
		"""Delete a resource and every edge touching it."""
		return await self._delete_node(
			Resource(normalize_namespace(namespace), parse_id(resource_id, 'resource_id'))
		)

	async def upsert(self, edge: Edge) -> bool:
		return await self._upsert(validate_edge(edge))

	async def delete(self, edge: Edge) -> bool:
		return await self._delete(validate_edge(edge))

	async def outgoing_edges(self, node: Node) -> frozenset[Edge]:
		async with self.snapshot() as reader:
			return await reader.outgoing_edges(node)

	@abstractmethod
	def snapshot(self):
		"""Async context manager yielding a `TupleReader`."""

	@abstractmethod
	async def count(self) -> int:
		"""Number of stored edges."""

	@abstractmethod
	async def _upsert(self, edge: Edge) -> bool:
		"""Insert `edge`; return False if it already existed."""

	@abstractmethod
	async def _delete(self, edge: Edge) -> bool:
		"""Remove `edge`; return False if it was absent."""

	@abstractmethod
	async def _delete_node(self, node: Node) -> int:
		"""Remove `node` and its incident edges; return edges removed."""


class GraphSnapshot(TupleReader):
	"""Immutable version of the in-memory graph."""

	def __init__(
		self,
		version: int = 0,
		outgoing: Mapping[Node, frozenset[Edge]] | None = None,
		incoming: Mapping[Resource, frozenset[Edge]] | None = None,
		nodes: frozenset[Node] = frozenset(),
	):
		self.version = version
		self._outgoing = outgoing if outgoing is not None else {}
		self._incoming = incoming if incoming is not None else {}
		self.nodes = nodes

	async def outgoing_edges(self, node: Node) -> frozenset[Edge]:
		return self._outgoing.get(node, frozenset())

	def incoming_edges(self, node: Node) -> frozenset[Edge]:
		return self._incoming.get(node, frozenset())

	def __contains__(self, edge: Edge) -> bool:
		return edge in self._outgoing.get(edge.source, frozenset())

	def __len__(self):
		return sum(len(edges) for edges in self._outgoing.values())


def _without(index: dict, key, edges) -> None:
	remaining = index.get(key, frozenset()) - edges
	if remaining:
		index[key] = remaining
	else:
		index.pop(key, None)


class InMemoryTupleStore(TupleStore):
	"""
	Copy-on-write graph store.

	Writers are serialized by a lock and publish a new `GraphSnapshot`
	per effective mutation; readers keep whichever version they took.
	"""

	def __init__(self):
		self._lock = threading.Lock()
		self._current = GraphSnapshot()

	@property
	def current(self) -> GraphSnapshot:
		return self._current

	@asynccontextmanager
	async def snapshot(self) -> AsyncIterator[GraphSnapshot]:
		yield self._current

	async def count(self) -> int:
		return len(self._current)

	async def _upsert(self, edge: Edge) -> bool:
		with self._lock:
			current = self._current
			if edge in current:
				return False

			outgoing = dict(current._outgoing)
			incoming = dict(current._incoming)
			outgoing[edge.source] = outgoing.get(edge.source, frozenset()) | {edge}
			incoming[edge.target] = incoming.get(edge.target, frozenset()) | {edge}
			self._publish(current, outgoing, incoming, current.nodes | {edge.source, edge.target})
		logger.debug(f"Created edge {edge}")
		return True

	async def _delete(self, edge: Edge) -> bool:
		with self._lock:
			current = self._current
			if edge not in current:
				return False

			outgoing = dict(current._outgoing)
			incoming = dict(current._incoming)
			_without(outgoing, edge.source, {edge})
			_without(incoming, edge.target, {edge})
			self._publish(current, outgoing, incoming, current.nodes)
		logger.debug(f"Deleted edge {edge}")
		return True

	async def _delete_node(self, node: Node) -> int:
		with self._lock:
			current = self._current
			if node not in current.nodes:
				return 0

			leaving = current._outgoing.get(node, frozenset())
			arriving = current._incoming.get(node, frozenset())
			outgoing = dict(current._outgoing)
			incoming = dict(current._incoming)
			outgoing.pop(node, None)
			incoming.pop(node, None)
			for edge in leaving:
				_without(incoming, edge.target, {edge})
			for edge in arriving:
				_without(outgoing, edge.source, {edge})
			self._publish(current, outgoing, incoming, current.nodes - {node})
			removed = len(leaving | arriving)
		logger.debug(f"Deleted node {node} with {removed} edges")
		return removed

	def _publish(self, current, outgoing, incoming, nodes) -> None:
		self._current = GraphSnapshot(current.version + 1, outgoing, incoming, nodes)
