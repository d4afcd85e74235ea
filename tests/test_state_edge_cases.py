"""Tests for RosterState invariants and file persistence."""
from __future__ import annotations

import json

import pytest

from eclipse_roster.errors import DuplicateError, NotFoundError, ValidationError
from eclipse_roster.state import (
    RosterState,
    load_roster,
    normalize_display_name,
    save_roster,
    sort_key,
)

CATEGORIES = ["Council", "Staff", "Moderador", "Eclipse", "Trial"]


@pytest.fixture
def state():
    return RosterState.with_categories(CATEGORIES)


def _occurrences(state: RosterState, name: str) -> int:
    return sum(
        1
        for members in state.snapshot().values()
        for member in members
        if member.lower() == name.lower()
    )


def test_normalize_display_name_title_cases_words():
    assert normalize_display_name("  jOHN   smith ") == "John Smith"
    assert normalize_display_name("élodie") == "Élodie"
    assert normalize_display_name("   ") == ""


def test_add_member_keeps_category_sorted(state):
    for raw in ["zoe", "Álvaro", "bob", "alice"]:
        state.add_member("Staff", raw)
    assert state.members("Staff") == ["Alice", "Álvaro", "Bob", "Zoe"]
    assert state.members("Staff") == sorted(state.members("Staff"), key=sort_key)


def test_readding_to_same_category_is_noop(state):
    first = state.add_member("Eclipse", "shamu")
    again = state.add_member("Eclipse", "SHAMU")

    assert not first.moved and not first.unchanged
    assert again.unchanged
    assert not again.moved
    assert state.members("Eclipse") == ["Shamu"]


def test_adding_to_other_category_moves_member(state):
    state.add_member("Staff", "bob")
    result = state.add_member("Eclipse", "Bob")

    assert result.moved
    assert result.previous == "Staff"
    assert "Bob" in state.members("Eclipse")
    assert "Bob" not in state.members("Staff")


def test_member_appears_in_at_most_one_category(state):
    moves = [
        ("Staff", "ana"),
        ("Trial", "Ana"),
        ("Council", "bob"),
        ("Eclipse", "ANA"),
        ("Trial", "bob"),
        ("Trial", "ana"),
    ]
    for category, raw in moves:
        state.add_member(category, raw)
        assert _occurrences(state, "ana") <= 1
        assert _occurrences(state, "bob") <= 1
    assert state.members("Trial") == ["Ana", "Bob"]


def test_add_member_rejects_empty_and_long_names(state):
    with pytest.raises(ValidationError):
        state.add_member("Staff", "   ")
    with pytest.raises(ValidationError):
        state.add_member("Staff", "x" * 33)
    state.add_member("Staff", "y" * 32)
    assert state.total_members() == 1


def test_add_member_unknown_category(state):
    with pytest.raises(NotFoundError):
        state.add_member("Nope", "Bob")


def test_remove_member_is_case_insensitive(state):
    state.add_member("Moderador", "maria jose")
    result = state.remove_member("MARIA JOSE")

    assert result.found
    assert result.category == "Moderador"
    assert result.name == "Maria Jose"
    assert state.members("Moderador") == []


def test_remove_missing_member(state):
    result = state.remove_member("ghost")
    assert not result.found
    assert result.name == "Ghost"


def test_add_category_positions(state):
    assert state.add_category("Leaders", 1) == 1
    assert state.categories()[0] == "Leaders"

    assert state.add_category("Guests", len(state) + 1) == len(state)
    assert state.categories()[-1] == "Guests"

    state.add_category("Overflow", 0)
    assert state.categories()[-1] == "Overflow"
    state.add_category("Far", 99)
    assert state.categories()[-1] == "Far"


def test_add_category_duplicate_is_case_sensitive(state):
    with pytest.raises(DuplicateError):
        state.add_category("Staff")
    state.add_category("staff")
    assert "staff" in state and "Staff" in state


def test_rename_preserves_members_and_position(state):
    state.add_member("Staff", "bob")
    index = state.categories().index("Staff")

    state.rename_category("Staff", "Crew")

    assert state.categories().index("Crew") == index
    assert "Staff" not in state
    assert state.members("Crew") == ["Bob"]


def test_rename_to_existing_category_fails(state):
    state.add_category("Crew")
    with pytest.raises(DuplicateError):
        state.rename_category("Staff", "Crew")
    assert "Staff" in state


def test_delete_category_drops_members(state):
    state.add_member("Trial", "atlas")
    removed = state.delete_category("Trial")

    assert removed == ["Atlas"]
    assert "Trial" not in state
    with pytest.raises(NotFoundError):
        state.delete_category("Trial")


def test_snapshot_is_a_copy(state):
    state.add_member("Staff", "bob")
    snap = state.snapshot()
    snap["Staff"].append("Mallory")
    assert state.members("Staff") == ["Bob"]


def test_round_trip_persistence(tmp_path, state):
    state.add_member("Staff", "bob")
    state.add_member("Eclipse", "shamu")
    state.add_category("Academy", 2)
    path = tmp_path / "state.json"

    save_roster(path, state)
    loaded = load_roster(path, RosterState())

    assert loaded.categories() == state.categories()
    assert loaded.snapshot() == state.snapshot()
    assert path.read_text(encoding="utf-8").startswith("{\n  ")


def test_load_missing_file_returns_default(tmp_path):
    default = RosterState.with_categories(["Staff"])
    assert load_roster(tmp_path / "missing.json", default) is default


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        json.dumps(["Staff"]),
        json.dumps({"Staff": "bob"}),
        json.dumps({"Staff": [1, 2]}),
        "null",
    ],
)
def test_load_malformed_file_returns_default(tmp_path, payload):
    path = tmp_path / "state.json"
    path.write_text(payload, encoding="utf-8")
    default = RosterState.with_categories(["Staff"])

    assert load_roster(path, default) is default


def test_enye_sorts_after_n(state):
    for raw in ["oscar", "ñandu", "nz", "nadia"]:
        state.add_member("Staff", raw)
    assert state.members("Staff") == ["Nadia", "Nz", "Ñandu", "Oscar"]


def test_load_drops_case_insensitive_duplicates(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"A": ["Bob", "Ann"], "B": ["bob", "Cid"]}), encoding="utf-8")

    loaded = load_roster(path, RosterState())

    assert loaded.snapshot() == {"A": ["Ann", "Bob"], "B": ["Cid"]}
    loaded.add_member("B", "BOB")
    assert loaded.snapshot() == {"A": ["Ann"], "B": ["Bob", "Cid"]}
