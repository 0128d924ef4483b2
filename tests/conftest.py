import pytest

from rebac_server.rebac import (
    InMemoryTupleStore,
    RelationshipChecker,
    RelationshipWriter,
    TupleImporter,
    UsersetRules,
)

USERSETS = {
    "doc": {
        "viewer": "viewer | owner | editor",
        "editor": "editor | owner",
        "owner": "owner",
    },
    "group": {
        "member": "member | admin",
        "admin": "admin",
    },
    "folder": {
        "viewer": "viewer",
    },
}


@pytest.fixture
def rules() -> UsersetRules:
    return UsersetRules.load(USERSETS)


@pytest.fixture
def store() -> InMemoryTupleStore:
    return InMemoryTupleStore()


@pytest.fixture
def checker(store, rules) -> RelationshipChecker:
    return RelationshipChecker(store, rules)


@pytest.fixture
def writer(store) -> RelationshipWriter:
    return RelationshipWriter(store)


@pytest.fixture
def importer(writer) -> TupleImporter:
    return TupleImporter(writer)
