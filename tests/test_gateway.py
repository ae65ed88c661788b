"""Unit tests for gateway helpers and request coercion."""

import re

import pytest

from callgate.engine.gateway import clamp_limit, generate_external_id, summarize_calls
from callgate.models import CallRecord
from callgate.schemas.call import CallIngestRequest


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, 500),
        ("0", 500),
        ("abc", 500),
        ("-3", 500),
        ("", 500),
        ("1", 1),
        ("25", 25),
        ("1000", 1000),
        ("5000", 1000),
        ("5.5", 5),
        ("10abc", 10),
        (" 12 ", 12),
        ("abc10", 500),
        (42, 42),
    ],
)
def test_clamp_limit(raw, expected):
    assert clamp_limit(raw) == expected


def test_generated_external_id_shape():
    """Generated ids are call_<epoch ms>_<7 lowercase alnum>."""
    ids = {generate_external_id() for _ in range(50)}
    assert len(ids) == 50
    for external_id in ids:
        assert re.fullmatch(r"call_\d+_[a-z0-9]{7}", external_id)


def _call(status: str, phone: str) -> CallRecord:
    return CallRecord(status=status, phone=phone)


def test_summary_counts_answered_and_unique_phones():
    records = [
        _call("Completed", " 555-0100 "),
        _call("answered", "555-0100"),
        _call("Answered Call", ""),
        _call("Qualified", "555-0199"),
        _call("answered later", "   "),
    ]
    summary = summarize_calls(records)
    assert summary.total_calls == 5
    assert summary.answered_calls == 3
    assert summary.answer_rate == 60.0
    assert summary.unique_contacts == 2


def test_summary_rounds_rate_to_one_decimal():
    summary = summarize_calls([_call("completed", "1"), _call("missed", "2"), _call("", "3")])
    assert summary.answer_rate == 33.3


def test_summary_of_empty_page():
    summary = summarize_calls([])
    assert summary.model_dump(by_alias=True) == {
        "totalCalls": 0,
        "answeredCalls": 0,
        "answerRate": 0.0,
        "uniqueContacts": 0,
    }


def test_ingest_request_coerces_fields():
    """Text fields are stringified and trimmed; unknown keys are dropped."""
    body = CallIngestRequest.model_validate(
        {
            "contactName": "  John Smith ",
            "phone": 5551234567,
            "direction": " OUTBOUND ",
            "status": None,
            "callId": "legacy-1",
            "accountId": "someone-else",
        }
    )
    assert body.contact_name == "John Smith"
    assert body.phone == "5551234567"
    assert body.direction == "outbound"
    assert body.status == ""
    assert body.summary == ""
    assert body.external_id == "legacy-1"
    assert not hasattr(body, "account_id")


def test_ingest_request_defaults():
    body = CallIngestRequest()
    assert body.direction == "inbound"
    assert body.external_id is None
    assert body.timestamp is None


@pytest.mark.parametrize("direction", ["sideways", "", None, 7])
def test_unknown_direction_becomes_inbound(direction):
    assert CallIngestRequest.model_validate({"direction": direction}).direction == "inbound"


def test_blank_external_id_is_treated_as_missing():
    assert CallIngestRequest.model_validate({"externalId": "   "}).external_id is None


def test_external_id_wins_over_call_id():
    body = CallIngestRequest.model_validate({"externalId": "ext-1", "callId": "legacy-1"})
    assert body.external_id == "ext-1"
