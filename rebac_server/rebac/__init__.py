# (c) Copyright Datacraft, 2026
"""Relationship-Based Access Control (ReBAC) - Zanzibar-style module."""
from .tuples import (
	Principal, Resource, Edge, RelationTuple,
	TupleReader, TupleStore, GraphSnapshot, InMemoryTupleStore,
)
from .usersets import UsersetRules, flatten_usersets, load_usersets_file
from .graph import RelationshipChecker, CheckResult, check_permission
from .writer import RelationshipWriter, TupleImporter, ImportReport, SkippedLine
from .sql_store import SqlSnapshot, SqlTupleStore

__all__ = [
	'Principal',
	'Resource',
	'Edge',
	'RelationTuple',
	'TupleReader',
	'TupleStore',
	'GraphSnapshot',
	'InMemoryTupleStore',
	'SqlSnapshot',
	'SqlTupleStore',
	'UsersetRules',
	'flatten_usersets',
	'load_usersets_file',
	'RelationshipChecker',
	'CheckResult',
	'check_permission',
	'RelationshipWriter',
	'TupleImporter',
	'ImportReport',
	'SkippedLine',
]
