import pytest

from agentcord.actions.action_catalog import build_default_catalog
from agentcord.dispatch.argument_coercion import ArgumentError, coerce_arguments


@pytest.fixture(scope="module")
def catalog():
    return build_default_catalog()


def test_numbers_are_parsed_from_strings(catalog):
    args = coerce_arguments(catalog.get("muteUser"), {"userId": "bob", "duration": "15"})
    assert args == {"userId": "bob", "duration": 15}


def test_fractional_numbers_are_kept(catalog):
    args = coerce_arguments(catalog.get("banUser"), {"userId": "1", "deleteMessageDays": "1.5"})
    assert args["deleteMessageDays"] == 1.5


@pytest.mark.parametrize("raw, expected", [
    ("true", True), ("Enable", True), ("on", True), (True, True),
    ("false", False), ("disabled", False), ("0", False), (False, False),
])
def test_booleans(catalog, raw, expected):
    assert coerce_arguments(catalog.get("filterSettings"), {"enabled": raw}) == {"enabled": expected}


def test_missing_required_argument(catalog):
    with pytest.raises(ArgumentError) as excinfo:
        coerce_arguments(catalog.get("kickUser"), {"reason": "spam"})
    assert str(excinfo.value) == "Error: Missing required argument 'userId' for kickUser."


def test_blank_required_argument_counts_as_missing(catalog):
    with pytest.raises(ArgumentError) as excinfo:
        coerce_arguments(catalog.get("warnUser"), {"userId": "bob", "reason": "  "})
    assert "Missing required argument 'reason'" in str(excinfo.value)


def test_bad_required_value_is_descriptive(catalog):
    with pytest.raises(ArgumentError) as excinfo:
        coerce_arguments(catalog.get("deleteMessages"), {"amount": "lots"})
    message = str(excinfo.value)
    assert message.startswith("Error: Invalid value 'lots' for 'amount' in deleteMessages")
    assert "expected a number" in message


def test_bad_optional_value_is_dropped(catalog):
    args = coerce_arguments(catalog.get("banUser"), {"userId": "bob", "deleteMessageDays": "a week"})
    assert args == {"userId": "bob"}


def test_unknown_arguments_are_ignored(catalog):
    args = coerce_arguments(catalog.get("kickUser"), {"userId": "bob", "silently": "yes"})
    assert args == {"userId": "bob"}


def test_enum_is_lowercased(catalog):
    args = coerce_arguments(catalog.get("createChannel"), {"name": "news", "type": "Announcement"})
    assert args["type"] == "announcement"


def test_enum_violation_lists_valid_values(catalog):
    with pytest.raises(ArgumentError) as excinfo:
        coerce_arguments(catalog.get("createChannel"), {"name": "x", "type": "forum"})
    assert str(excinfo.value) == "Error: Invalid type 'forum'. Valid values are: text, voice, announcement."


def test_array_from_json_string(catalog):
    args = coerce_arguments(
        catalog.get("createEmbed"),
        {"channelId": "1", "title": "t", "description": "d", "fields": '[{"name": "a", "value": "b"}]'},
    )
    assert args["fields"] == [{"name": "a", "value": "b"}]


def test_non_string_identifiers_become_strings(catalog):
    args = coerce_arguments(catalog.get("kickUser"), {"userId": 123456789})
    assert args == {"userId": "123456789"}
