import pytest

from orgmapper.config import TARGET_FIELDS
from orgmapper.mapping import (
    is_complete,
    mapped_count,
    mapping_from_suggestion,
    missing_fields,
    reconcile_mapping,
    reset_mapping,
    set_mapping,
)

HEADERS = ["User", "Manager", "Site", "Team", "Type", "Level"]


def test_reset_unmaps_every_target_field():
    mapping = reset_mapping()

    assert set(mapping) == set(TARGET_FIELDS)
    assert all(value is None for value in mapping.values())


def test_set_mapping_returns_a_new_mapping():
    original = reset_mapping()
    updated = set_mapping(original, "manager", "Manager")

    assert updated["manager"] == "Manager"
    assert original["manager"] is None


def test_set_mapping_does_not_check_header_existence():
    updated = set_mapping(reset_mapping(), "location", "Not A Header")

    assert updated["location"] == "Not A Header"


def test_set_mapping_empty_string_means_unmapped():
    mapping = set_mapping(reset_mapping(), "level", "Level")

    assert set_mapping(mapping, "level", "")["level"] is None
    assert set_mapping(mapping, "level", None)["level"] is None


def test_set_mapping_rejects_unknown_field():
    with pytest.raises(KeyError):
        set_mapping(reset_mapping(), "salary", "Pay")


def test_team_project_is_optional_by_default(mapping):
    mapping["team_project"] = None

    assert is_complete(mapping)


def test_missing_username_blocks_completion(mapping):
    mapping["username"] = None

    assert not is_complete(mapping)
    assert missing_fields(mapping) == ["username"]


def test_completion_uses_caller_supplied_fields():
    mapping = set_mapping(reset_mapping(), "manager", "Manager")

    assert is_complete(mapping, ["manager"])
    assert not is_complete(mapping, ["manager", "location"])


def test_reconcile_drops_headers_absent_from_new_file(mapping):
    reconciled = reconcile_mapping(mapping, ["Manager", "Site"])

    assert reconciled["manager"] == "Manager"
    assert reconciled["location"] == "Site"
    assert reconciled["level"] is None
    assert reconciled["username"] is None


def test_suggestion_accepts_camel_case_and_ignores_unknown_headers():
    suggestion = {
        "manager": "Manager",
        "location": "Office",  # not a header of this file
        "teamProject": "Team",
        "employeeType": "Type",
        "level": "",
    }

    mapping = mapping_from_suggestion(suggestion, HEADERS)

    assert mapping == {
        "manager": "Manager",
        "location": None,
        "team_project": "Team",
        "employee_type": "Type",
        "level": None,
        "username": None,
    }
    assert mapped_count(mapping) == 3
