import pytest

from rebac_server.exceptions import ConfigError
from rebac_server.rebac import UsersetRules, flatten_usersets, load_usersets_file


def test_flatten_nested_mapping():
    flat = flatten_usersets({
        "doc": {"viewer": "viewer | owner", "owner": "owner"},
        "org": {"team": {"member": "member|lead"}},
    })
    assert flat == {
        "doc.viewer": frozenset({"viewer", "owner"}),
        "doc.owner": frozenset({"owner"}),
        "org.team.member": frozenset({"member", "lead"}),
    }


def test_leaf_values_are_trimmed_and_lower_cased():
    rules = UsersetRules.load({"doc": {"Viewer": " Viewer |OWNER | | editor "}})
    assert rules.lookup("doc", "viewer") == {"viewer", "owner", "editor"}
    assert rules.lookup("doc", " VIEWER ") == {"viewer", "owner", "editor"}


def test_leaf_without_delimiter_is_singleton():
    rules = UsersetRules.load({"group": {"member": "member"}})
    assert rules.lookup("group", "member") == {"member"}


def test_list_leaf():
    rules = UsersetRules.load({"doc": {"viewer": ["Viewer", "owner"]}})
    assert rules.lookup("doc", "viewer") == {"viewer", "owner"}


def test_custom_delimiter():
    rules = UsersetRules.load({"doc": {"viewer": "viewer, owner"}}, delimiter=",")
    assert rules.lookup("doc", "viewer") == {"viewer", "owner"}


def test_lookup_unconfigured_is_empty():
    rules = UsersetRules.load({"doc": {"viewer": "viewer"}})
    assert rules.lookup("doc", "editor") == frozenset()
    assert rules.lookup("folder", "viewer") == frozenset()
    assert rules.lookup("doc", None) == frozenset()
    assert rules.lookup("", "viewer") == frozenset()


def test_top_level_leaf_has_no_namespace():
    rules = UsersetRules.load({"viewer": "viewer"})
    assert "viewer" in rules
    assert rules.keys() == ["viewer"]


def test_empty_table():
    assert len(UsersetRules.load({})) == 0
    assert len(UsersetRules.load(None)) == 0
    assert len(UsersetRules()) == 0


def test_each_table_gets_a_new_version():
    first = UsersetRules.load({"doc": {"viewer": "viewer"}})
    second = UsersetRules.load({"doc": {"viewer": "viewer"}})
    assert second.version > first.version


def test_as_dict_is_sorted():
    rules = UsersetRules.load({"doc": {"viewer": "viewer|owner|editor"}})
    assert rules.as_dict() == {"doc.viewer": ["editor", "owner", "viewer"]}


@pytest.mark.parametrize("raw", [
    ["doc.viewer"],
    "doc.viewer: viewer",
    {"doc": {"viewer": 3}},
    {"doc": {"viewer": None}},
    {"doc": {"viewer": ["viewer", 1]}},
    {"doc": {"viewer": "viewer"}, "doc.viewer": "owner"},
    {"doc": {"": "viewer"}},
])
def test_invalid_config(raw):
    with pytest.raises(ConfigError):
        UsersetRules.load(raw)


def test_from_yaml():
    rules = UsersetRules.from_yaml(
        "doc:\n"
        "  viewer: viewer | owner | editor\n"
        "group:\n"
        "  member: member\n"
    )
    assert rules.lookup("doc", "viewer") == {"viewer", "owner", "editor"}
    assert rules.lookup("group", "member") == {"member"}


def test_from_yaml_syntax_error():
    with pytest.raises(ConfigError):
        UsersetRules.from_yaml("doc: [viewer\n")


def test_load_file(tmp_path):
    path = tmp_path / "usersets.yaml"
    path.write_text("doc:\n  viewer: viewer|owner\n", encoding="utf-8")
    rules = load_usersets_file(path)
    assert rules.lookup("doc", "viewer") == {"viewer", "owner"}


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_usersets_file(tmp_path / "missing.yaml")
