from __future__ import annotations

from pyturnout._redact import is_sensitive_key, redact_for_log
from pyturnout.models.observation import RawObservation


def test_redact_for_log_masks_credentials_and_voter_fields() -> None:
    payload = {
        "geo_id": "P1",
        "apikey": "anon-key",
        "Authorization": "Bearer anon-key",
        "new": {"voter_id": "V-123", "phone_number": "555-0100", "neighbor_turnout": "most"},
        "rows": [{"vote_intent": "yes", "turnout_direction": "about_same"}],
    }

    redacted = redact_for_log(payload)

    assert redacted["geo_id"] == "P1"
    assert redacted["apikey"] == "<redacted>"
    assert redacted["Authorization"] == "<redacted>"
    assert redacted["new"] == {"voter_id": "<redacted>", "phone_number": "<redacted>", "neighbor_turnout": "most"}
    assert redacted["rows"] == [{"vote_intent": "<redacted>", "turnout_direction": "about_same"}]


def test_sensitive_keys_ignore_case_and_separators() -> None:
    assert is_sensitive_key("X-Api-Key")
    assert is_sensitive_key("mqtt_password")
    assert is_sensitive_key("voteIntent")
    assert not is_sensitive_key("key")
    assert not is_sensitive_key("geo_id")


def test_redact_for_log_dumps_models() -> None:
    observation = RawObservation.model_validate(
        {"geo_id": "P1", "neighbor_turnout": "most", "turnout_direction": "much_higher", "vote_intent": "probably_yes"}
    )

    redacted = redact_for_log(observation)

    assert redacted["entity_key"] == "P1"
    assert redacted["vote_intent"] == "<redacted>"


def test_redact_for_log_bounds_strings_batches_and_bytes() -> None:
    redacted = redact_for_log({"value": "x" * 600, "rows": list(range(30))}, max_string=10, max_items=5)

    assert redacted["value"] == "x" * 10 + "...<600 chars>"
    assert redacted["rows"] == [0, 1, 2, 3, 4, "<+25 more>"]
    assert redact_for_log(b"\x00\x01\x02") == "<bytes:3b>"
