# (c) Copyright Datacraft, 2026
"""Database schema for relationship edges."""
from sqlalchemy import String, BigInteger, Index, UniqueConstraint, Integer
from sqlalchemy.orm import Mapped, mapped_column

from rebac_server.db.base import Base

from .tuples import Edge, Node, Principal, Resource

PRINCIPAL = 'principal'
RESOURCE = 'resource'


class RelationEdge(Base):
	"""
	One edge of the relationship graph.

	Principals have no namespace and direct edges have no source
	relation; both are stored as '' so the unique constraint covers
	every row.
	"""

	__tablename__ = "relation_edges"

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

	# Origin (principal or resource)
	source_type: Mapped[str] = mapped_column(String(10), nullable=False)
	source_namespace: Mapped[str] = mapped_column(String(100), nullable=False, default='')
	source_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

	label: Mapped[str] = mapped_column(String(100), nullable=False)
	source_relation: Mapped[str] = mapped_column(String(100), nullable=False, default='')

	# Target resource
	target_namespace: Mapped[str] = mapped_column(String(100), nullable=False)
	target_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

	__table_args__ = (
		UniqueConstraint(
			"source_type", "source_namespace", "source_id", "label",
			"source_relation", "target_namespace", "target_id",
			name="uq_relation_edge"
		),
		Index("idx_edge_source", "source_type", "source_namespace", "source_id"),
		Index("idx_edge_target", "target_namespace", "target_id"),
	)

	def __repr__(self):
		return str(self.to_edge())

	@classmethod
	def from_edge(cls, edge: Edge) -> "RelationEdge":
		return cls(**edge_columns(edge))

	def to_edge(self) -> Edge:
		if self.source_type == PRINCIPAL:
			source: Node = Principal(self.source_id)
		else:
			source = Resource(self.source_namespace, self.source_id)
		return Edge(
			source=source,
			label=self.label,
			target=Resource(self.target_namespace, self.target_id),
			source_relation=self.source_relation or None,
		)


def node_columns(node: Node) -> dict:
	if isinstance(node, Principal):
		return {'source_type': PRINCIPAL, 'source_namespace': '', 'source_id': node.id}
	return {'source_type': RESOURCE, 'source_namespace': node.namespace, 'source_id': node.id}


def edge_columns(edge: Edge) -> dict:
	return {
		**node_columns(edge.source),
		'label': edge.label,
		'source_relation': edge.source_relation or '',
		'target_namespace': edge.target.namespace,
		'target_id': edge.target.id,
	}
