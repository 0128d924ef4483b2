# (c) Copyright Datacraft, 2026
"""Relationship graph traversal and permission checking."""
import asyncio
import logging
from dataclasses import dataclass, field

from rebac_server.utils import parse_id, normalize_namespace, normalize_relation
from .tuples import Edge, Node, Principal, Resource, TupleReader, TupleStore
from .usersets import UsersetRules

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
	"""Result of a permission check."""
	allowed: bool
	path: list[str] = field(default_factory=list)
	phase: str | None = None  # 'direct' or 'transitive' when allowed
	evaluation_count: int = 0  # edges examined


@dataclass(frozen=True)
class _Path:
	"""A simple path from the principal, ending at `edges[-1].target`."""
	edges: tuple[Edge, ...]
	visited: frozenset[Node]

	@property
	def node(self) -> Resource:
		return self.edges[-1].target

	@property
	def last(self) -> Edge:
		return self.edges[-1]

	def extend(self, edge: Edge) -> "_Path":
		return _Path(self.edges + (edge,), self.visited | {edge.target})

	def describe(self) -> list[str]:
		return [str(edge) for edge in self.edges]


class RelationshipChecker:
	"""
	Check permissions using relationship graph traversal.

	Two phases:
	- Direct: an edge principal -> resource whose label the userset
	  rules accept for the requested relation.
	- Transitive: breadth-first search over simple paths from the
	  principal. The last edge must land on the resource with an
	  accepted label, and at every intermediate resource the label that
	  reached it must be accepted for the relation the next edge
	  declares as its `source_relation`.

	Each check runs against a single store snapshot and a single rule
	table version.
	"""

	def __init__(
		self,
		store: TupleStore,
		rules: UsersetRules,
		max_concurrency: int = 16,
		max_depth: int | None = None,
	):
		if max_concurrency < 1:
			raise ValueError("max_concurrency must be positive")
		if max_depth is not None and max_depth < 1:
			raise ValueError("max_depth must be positive")
		self.store = store
		self._rules = rules
		self.max_concurrency = max_concurrency
		self.max_depth = max_depth

	@property
	def rules(self) -> UsersetRules:
		return self._rules

	def replace_rules(self, rules: UsersetRules):
		"""Swap in a new rule table. Checks already running keep the old one."""
		previous, self._rules = self._rules, rules
		logger.info(f"Replaced userset rules version {previous.version} with {rules.version}")

	async def check_access(self, principal_id, resource_id, namespace, relation) -> bool:
		result = await self.check(principal_id, resource_id, namespace, relation)
		return result.allowed

	async def check(
		self,
		principal_id,
		resource_id,
		namespace,
		relation,
	) -> CheckResult:
		"""
		Check if principal holds relation to the resource.

		Args:
			principal_id: Non-negative principal id
			resource_id: Non-negative resource id
			namespace: Namespace of the resource (doc, group, etc.)
			relation: Requested relation (viewer, editor, etc.)

		Returns:
			CheckResult with allowed status and the satisfying path

		Raises:
			ValidationError: malformed ids or names
			StoreError: the store failed or timed out
		"""
		principal = Principal(parse_id(principal_id, 'principal_id'))
		target = Resource(normalize_namespace(namespace), parse_id(resource_id, 'resource_id'))
		relation = normalize_relation(relation)

		rules = self._rules
		accepted = rules.lookup(target.namespace, relation)
		if not accepted:
			logger.debug(f"No userset for {target.namespace}.{relation}; denying {principal}")
			return CheckResult(allowed=False)

		async with self.store.snapshot() as reader:
			first_edges = await reader.outgoing_edges(principal)

			# 1. Direct tuple check
			for edge in first_edges:
				if edge.target == target and edge.label in accepted:
					logger.debug(f"Direct grant {edge} satisfies {target}#{relation}")
					return CheckResult(
						allowed=True,
						path=[str(edge)],
						phase='direct',
						evaluation_count=len(first_edges),
					)

			# 2. Transitive check through userset edges
			result = await self._check_transitive(
				reader, rules, principal, target, accepted, first_edges,
			)

		logger.debug(
			f"Check {principal} {target}#{relation}: {result.allowed} "
			f"after {result.evaluation_count} edges"
		)
		return result

	async def _check_transitive(
		self,
		reader: TupleReader,
		rules: UsersetRules,
		principal: Principal,
		target: Resource,
		accepted: frozenset[str],
		first_edges: frozenset[Edge],
	) -> CheckResult:
		"""
		Breadth-first search over simple paths, one level at a time.

		Paths ending at the same node with the same label and the same
		visited set have identical continuations, so only the first of
		them is kept.
		"""
		evaluated = len(first_edges)
		# Paths ending at the target were settled by the direct check.
		frontier = [
			_Path((edge,), frozenset({principal, edge.target}))
			for edge in first_edges
			if edge.target != target
		]
		semaphore = asyncio.Semaphore(self.max_concurrency)
		depth = 1

		while frontier:
			# At the cap the next level is only read to report what gets pruned.
			at_limit = self.max_depth is not None and depth >= self.max_depth
			depth += 1

			by_node: dict[Resource, list[_Path]] = {}
			for path in frontier:
				by_node.setdefault(path.node, []).append(path)

			tasks = [
				asyncio.create_task(self._fetch(reader, node, semaphore))
				for node in by_node
			]
			next_frontier: list[_Path] = []
			seen: set[tuple] = set()
			pruned = 0
			try:
				for fetched in asyncio.as_completed(tasks):
					node, edges = await fetched
					evaluated += len(edges)
					for path in by_node[node]:
						found = self._extend(path, edges, rules, target, accepted, next_frontier, seen)
						if found is None:
							continue
						if at_limit:
							pruned += 1
							continue
						return CheckResult(
							allowed=True,
							path=found.describe(),
							phase='transitive',
							evaluation_count=evaluated,
						)
			finally:
				pending = [task for task in tasks if not task.done()]
				for task in pending:
					task.cancel()
				if pending:
					await asyncio.gather(*pending, return_exceptions=True)

			if at_limit:
				pruned += len(next_frontier)
				if pruned:
					logger.warning(
						f"Max depth {self.max_depth} reached checking {target} "
						f"for principal {principal}; {pruned} paths pruned"
					)
				break
			frontier = next_frontier

		return CheckResult(allowed=False, evaluation_count=evaluated)

	@staticmethod
	def _extend(
		path: _Path,
		edges: frozenset[Edge],
		rules: UsersetRules,
		target: Resource,
		accepted: frozenset[str],
		next_frontier: list[_Path],
		seen: set[tuple],
	) -> _Path | None:
		"""Follow `edges` from the end of `path`; return a satisfying path if any."""
		node = path.node
		for edge in edges:
			if edge.target in path.visited:
				continue
			# The label that reached `node` must satisfy the next edge's entry relation.
			if path.last.label not in rules.lookup(node.namespace, edge.source_relation):
				continue
			if edge.target == target:
				if edge.label in accepted:
					return path.extend(edge)
				continue
			extended = path.extend(edge)
			key = (edge.target, edge.label, extended.visited)
			if key in seen:
				continue
			seen.add(key)
			next_frontier.append(extended)
		return None

	@staticmethod
	async def _fetch(
		reader: TupleReader,
		node: Resource,
		semaphore: asyncio.Semaphore,
	) -> tuple[Resource, frozenset[Edge]]:
		async with semaphore:
			return node, await reader.outgoing_edges(node)


# Convenience functions

async def check_permission(
	store: TupleStore,
	rules: UsersetRules,
	principal_id,
	resource_id,
	namespace,
	relation,
) -> bool:
	"""Quick permission check."""
	checker = RelationshipChecker(store, rules)
	return await checker.check_access(principal_id, resource_id, namespace, relation)
