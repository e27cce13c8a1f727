from datetime import datetime

import pytest

from formfill import config
from formfill.mapping import compute_value, resolve_map_key, resolve_values, today_local
from formfill.schemas import RenderContext
from formfill.text import clean_text, format_date_au, get_path, is_truthy

TODAY = datetime(2025, 3, 7, 9, 30)

PARTICIPANT = {
    "first_name": "  Ada ",
    "last_name": "Lovelace",
    "date_of_birth": "1815-12-10",
    "email": "ada@example.com",
    "address": {"suburb": "Marylebone", "lines": ["12 St James's Sq", "London"]},
}

CONTEXT = RenderContext(
    participant=PARTICIPANT,
    caller={"display_name": "Case Worker", "email": "worker@example.com"},
    workflow_request={"reference": "WR-42", "participant_data": PARTICIPANT},
)


def test_clean_text_rules():
    assert clean_text(None) == ""
    assert clean_text(True) == "Yes"
    assert clean_text(False) == "No"
    assert clean_text(42) == "42"
    assert clean_text(3.0) == "3"
    assert clean_text(2.5) == "2.5"
    assert clean_text(float("nan")) == ""
    assert clean_text(float("inf")) == ""
    assert clean_text("  padded \n") == "padded"
    assert clean_text(["a"]) == "['a']"


@pytest.mark.parametrize("value", [True, "1", "true", "TRUE", "yes", "Y", " on ", "Checked", 1])
def test_is_truthy_accepts_checked_values(value):
    assert is_truthy(value)


@pytest.mark.parametrize("value", [False, None, "", 0, "0", "no", "off", "x", "truthy"])
def test_is_truthy_rejects_everything_else(value):
    assert not is_truthy(value)


def test_format_date_au():
    assert format_date_au("2025-01-09") == "09/01/2025"
    assert format_date_au("2025-01-09T13:45:00Z") == "09/01/2025"
    assert format_date_au(datetime(2024, 2, 29)) == "29/02/2024"
    # slash dates are read month-first
    assert format_date_au("09/01/2025") == "01/09/2025"
    assert format_date_au("10 December 1815") == "10/12/1815"
    assert format_date_au("not a date") == "not a date"
    assert format_date_au(None) == ""


def test_get_path_walks_dicts_and_lists():
    assert get_path(PARTICIPANT, "address.suburb") == "Marylebone"
    assert get_path(PARTICIPANT, "address.lines.1") == "London"
    assert get_path(PARTICIPANT, "address.lines.9") is None
    assert get_path(PARTICIPANT, "email.domain") is None
    assert get_path(None, "email") is None


def test_resolve_map_key_prefixes():
    assert resolve_map_key("Participant.first_name", CONTEXT) == "Ada"
    assert resolve_map_key("participant.address.suburb", CONTEXT) == "Marylebone"
    assert resolve_map_key("User.display_name", CONTEXT) == "Case Worker"
    assert resolve_map_key("user.email", CONTEXT) == "worker@example.com"
    assert resolve_map_key("WorkflowRequest.reference", CONTEXT) == "WR-42"
    assert resolve_map_key("workflowrequest.participant_data.last_name", CONTEXT) == "Lovelace"
    assert resolve_map_key("Participant.missing", CONTEXT) == ""
    assert resolve_map_key("", CONTEXT) == ""


def test_bare_key_reads_participant():
    assert resolve_map_key("email", CONTEXT) == "ada@example.com"


def test_computed_values():
    assert resolve_map_key("computed.full_name", CONTEXT) == "Ada Lovelace"
    assert resolve_map_key("Computed.today_au", CONTEXT, today=TODAY) == "07/03/2025"
    assert resolve_map_key("computed.unknown", CONTEXT) == ""
    assert compute_value("computed.full_name", {"last_name": "Byron"}) == "Byron"


def test_computed_dob_reformats_iso_date():
    ctx = RenderContext(participant={"date_of_birth": "1815-12-10"})
    assert resolve_map_key("computed.dob_au", ctx) == "10/12/1815"


def test_today_local_falls_back_to_utc(monkeypatch):
    monkeypatch.setattr(config, "FORMFILL_TIMEZONE", "Not/AZone")
    assert today_local().utcoffset().total_seconds() == 0


def test_mapped_field_ignores_manual_value():
    schema = [{"id": "email", "map_key": "Participant.email"}]
    values = resolve_values(schema, {"email": "typed@example.com"}, context=CONTEXT, today=TODAY)
    assert values == {"email": "ada@example.com"}


def test_empty_mapped_lookup_still_wins():
    schema = [{"id": "phone", "mapKey": "Participant.phone"}]
    instance = {"values": {"phone": "0400 000 000"}}
    values = resolve_values(schema, {"phone": "0411 111 111"}, instance, CONTEXT, today=TODAY)
    assert values == {"phone": ""}


def test_editable_after_prefill_prefers_non_empty_manual_value():
    schema = [
        {"id": "email", "map_key": "Participant.email", "editableAfterPrefill": True},
        {"id": "surname", "map_key": "Participant.last_name", "editable_after_prefill": True},
    ]
    manual = {"email": " override@example.com ", "surname": "   "}
    values = resolve_values(schema, manual, context=CONTEXT, today=TODAY)
    assert values == {"email": "override@example.com", "surname": "Lovelace"}


def test_manual_field_fallback_chain():
    schema = [
        {"id": "a", "map_key": "__manual__"},
        {"id": "b"},
        {"id": "c", "mapKey": ""},
        {"id": "d", "map_key": "__manual__"},
        {"id": "e", "map_key": "__manual__"},
    ]
    instance = {
        "values": {"a": "from values"},
        "filled_data": {"a": "ignored", "b": "from filled_data"},
        "filledData": {"b": "ignored", "c": "from filledData"},
    }
    manual = {"e": "   "}
    values = resolve_values(schema, manual, instance, CONTEXT, today=TODAY)
    assert values == {
        "a": "from values",
        "b": "from filled_data",
        "c": "from filledData",
        "d": "",
        "e": "",
    }


def test_manual_value_used_for_manual_field():
    schema = [{"id": "notes", "type": "textarea", "map_key": "__manual__"}]
    values = resolve_values(schema, {"notes": 12}, {"values": {"notes": "old"}}, CONTEXT, today=TODAY)
    assert values == {"notes": "12"}


def test_signature_and_malformed_entries_are_skipped():
    schema = [
        {"id": "sig", "type": "signature"},
        {"id": "", "map_key": "Participant.email"},
        "not an entry",
        {"key": "legacy_key", "map_key": "Participant.first_name"},
    ]
    values = resolve_values(schema, {"sig": "data:image/png;base64,AAAA"}, context=CONTEXT, today=TODAY)
    assert values == {"legacy_key": "Ada"}


@pytest.mark.parametrize("rect", ["broken", [], 5, None])
def test_bad_placement_does_not_drop_field(rect):
    schema = [
        {"id": "x", "rect": rect},
        {"id": "mail", "map_key": "Participant.email", "rect": rect},
    ]
    values = resolve_values(schema, {"x": "typed"}, context=CONTEXT, today=TODAY)
    assert values == {"x": "typed", "mail": "ada@example.com"}


@pytest.mark.parametrize("participant_data", [["a"], "Ada", 7])
def test_non_dict_participant_reads_as_empty(participant_data):
    ctx = RenderContext.from_workflow_request({"participant_data": participant_data}, "caller")
    assert ctx.participant == {}
    assert ctx.caller == {}
    assert resolve_map_key("Participant.first_name", ctx) == ""
    assert resolve_map_key("computed.full_name", ctx) == ""


def test_resolve_values_is_total_over_odd_inputs():
    assert resolve_values(None) == {}
    assert resolve_values("nope", manual_values="nope", instance="nope") == {}
