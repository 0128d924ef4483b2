# (c) Copyright Datacraft, 2026
"""SQLAlchemy backed tuple store."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, TypeVar

from sqlalchemy import select, delete, func, and_, or_
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from rebac_server.db.base import Base
from rebac_server.exceptions import StoreError, StoreUnavailable
from .models import RelationEdge, edge_columns, node_columns, RESOURCE
from .tuples import Edge, Node, TupleReader, TupleStore

logger = logging.getLogger(__name__)

T = TypeVar('T')


def _retrieve(work: asyncio.Future):
	# Results of abandoned work are never awaited.
	if not work.cancelled():
		work.exception()


class SqlSnapshot(TupleReader):
	"""
	Reads made through one session and transaction.

	Queries are serialized since a session is not safe for concurrent
	use; results are memoized for the life of the snapshot. A query that
	outlives its deadline keeps the session busy until its thread returns.
	"""

	def __init__(self, store: "SqlTupleStore", session: Session):
		self._store = store
		self._session = session
		self._lock = asyncio.Lock()
		self._cache: dict[Node, frozenset[Edge]] = {}
		self._pending: asyncio.Future | None = None

	async def outgoing_edges(self, node: Node) -> frozenset[Edge]:
		if node in self._cache:
			return self._cache[node]
		async with self._lock:
			if node not in self._cache:
				self._cache[node] = await self._query(self._select_outgoing, node)
		return self._cache[node]

	async def _query(self, fn: Callable[..., T], *args) -> T:
		if self._pending is not None and not self._pending.done():
			raise StoreUnavailable("Snapshot session is still busy with an abandoned query")
		self._pending = self._store._submit(fn, *args)
		return await self._store._wait(self._pending)

	def _select_outgoing(self, node: Node) -> frozenset[Edge]:
		stmt = select(RelationEdge).filter_by(**node_columns(node))
		return frozenset(row.to_edge() for row in self._session.scalars(stmt))

	async def close(self):
		"""Release the session, deferring until any abandoned query returns."""
		pending = self._pending
		if pending is not None and not pending.done():
			logger.warning("Snapshot query still running; closing its session when it returns")
			pending.add_done_callback(lambda _: self._store._close_later(self._session))
			return
		try:
			await self._store._run(self._store._close_snapshot, self._session)
		except StoreError as exc:
			logger.warning(f"Failed to close snapshot session: {exc}")


class SqlTupleStore(TupleStore):
	"""
	Tuple store over a relational database.

	Every round trip runs in a worker thread with a deadline. Timeouts
	and lost connections raise StoreUnavailable, other database failures
	raise StoreError; neither is ever reported as a denied check.
	"""

	def __init__(
		self,
		session_factory: sessionmaker,
		timeout: float = 5.0,
		isolation_level: str | None = None,
	):
		if timeout <= 0:
			raise ValueError("timeout must be positive")
		self._session_factory = session_factory
		self.timeout = timeout
		self.isolation_level = isolation_level

	def create_schema(self):
		"""Create the edge table if missing."""
		Base.metadata.create_all(self._session_factory.kw['bind'])

	@staticmethod
	def _submit(fn: Callable[..., T], *args) -> asyncio.Future:
		work = asyncio.ensure_future(asyncio.to_thread(fn, *args))
		work.add_done_callback(_retrieve)
		return work

	async def _wait(self, work: asyncio.Future):
		"""Wait for `work` up to the deadline. The thread is never interrupted."""
		try:
			return await asyncio.wait_for(asyncio.shield(work), timeout=self.timeout)
		except asyncio.TimeoutError as exc:
			raise StoreUnavailable(f"Store did not respond within {self.timeout}s") from exc
		except (OperationalError, InterfaceError) as exc:
			raise StoreUnavailable(f"Store unreachable: {exc}") from exc
		except SQLAlchemyError as exc:
			raise StoreError(f"Store failure: {exc}") from exc

	async def _run(self, fn: Callable[..., T], *args) -> T:
		return await self._wait(self._submit(fn, *args))

	@asynccontextmanager
	async def snapshot(self) -> AsyncIterator[SqlSnapshot]:
		opening = self._submit(self._open_snapshot)
		try:
			session = await self._wait(opening)
		except BaseException:
			if not opening.done():
				opening.add_done_callback(self._close_opened)
			raise
		reader = SqlSnapshot(self, session)
		try:
			yield reader
		finally:
			await reader.close()

	def _open_snapshot(self) -> Session:
		session = self._session_factory()
		if self.isolation_level:
			session.connection(execution_options={'isolation_level': self.isolation_level})
		return session

	@staticmethod
	def _close_snapshot(session: Session):
		session.rollback()
		session.close()

	def _close_opened(self, opening: asyncio.Future):
		if not opening.cancelled() and opening.exception() is None:
			self._close_later(opening.result())

	def _close_later(self, session: Session):
		"""Close `session` in a worker thread without waiting for it."""
		closing = asyncio.get_running_loop().run_in_executor(None, self._close_snapshot, session)
		closing.add_done_callback(self._log_close_failure)

	@staticmethod
	def _log_close_failure(closing: asyncio.Future):
		if not closing.cancelled() and closing.exception() is not None:
			logger.warning(f"Failed to close abandoned snapshot session: {closing.exception()}")

	async def count(self) -> int:
		return await self._run(self._count)

	def _count(self) -> int:
		with self._session_factory() as session:
			return session.scalar(select(func.count(RelationEdge.id)))

	async def _upsert(self, edge: Edge) -> bool:
		created = await self._run(self._insert, edge)
		if created:
			logger.debug(f"Created edge {edge}")
		return created

	def _insert(self, edge: Edge) -> bool:
		with self._session_factory() as session:
			existing = session.scalar(
				select(RelationEdge.id).filter_by(**edge_columns(edge))
			)
			if existing is not None:
				return False
			session.add(RelationEdge.from_edge(edge))
			try:
				session.commit()
			except IntegrityError:
				# A concurrent writer inserted the same edge first.
				session.rollback()
				return False
			return True

	async def _delete(self, edge: Edge) -> bool:
		return await self._run(self._delete_rows, edge)

	def _delete_rows(self, edge: Edge) -> bool:
		with self._session_factory() as session:
			result = session.execute(
				delete(RelationEdge).filter_by(**edge_columns(edge))
			)
			session.commit()
			return result.rowcount > 0

	async def _delete_node(self, node: Node) -> int:
		removed = await self._run(self._delete_incident, node)
		logger.debug(f"Deleted node {node} with {removed} edges")
		return removed

	def _delete_incident(self, node: Node) -> int:
		columns = node_columns(node)
		leaving = and_(*(
			getattr(RelationEdge, name) == value for name, value in columns.items()
		))
		condition = leaving
		if columns['source_type'] == RESOURCE:
			arriving = and_(
				RelationEdge.target_namespace == node.namespace,
				RelationEdge.target_id == node.id,
			)
			condition = or_(leaving, arriving)

		with self._session_factory() as session:
			result = session.execute(delete(RelationEdge).where(condition))
			session.commit()
			return result.rowcount
