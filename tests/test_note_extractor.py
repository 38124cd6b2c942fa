import json

import pytest
from pydantic import ValidationError

from chartmind.models.responses import ClinicalNote
from chartmind.services.note_extractor import (
    FALLBACK_TEXT,
    HeuristicReply,
    Section,
    StructuredReply,
    decode_reply,
    extract,
    match_header,
    normalize_sections,
    scan_sections,
)

FIELDS = ("subjective", "objective", "assessment", "plan")


def _fallback(name: str) -> str:
    return FALLBACK_TEXT[Section(name)]


def test_structured_reply_values_are_trimmed() -> None:
    reply = json.dumps({
        "subjective": "  Headache for three days.  ",
        "objective": "BP 120/80.",
        "assessment": "\nTension headache.\n",
        "plan": "Ibuprofen 400mg PRN.",
    })
    note = extract(reply)
    assert note == ClinicalNote(
        subjective="Headache for three days.",
        objective="BP 120/80.",
        assessment="Tension headache.",
        plan="Ibuprofen 400mg PRN.",
    )


@pytest.mark.parametrize("missing", FIELDS)
@pytest.mark.parametrize("value", [None, "", "   \n\t", "absent"])
def test_structured_reply_missing_or_blank_field_uses_fallback(missing: str, value) -> None:
    payload = {name: f"{name} text" for name in FIELDS}
    if value == "absent":
        del payload[missing]
    else:
        payload[missing] = value

    note = extract(json.dumps(payload))

    assert getattr(note, missing) == _fallback(missing)
    for name in FIELDS:
        if name != missing:
            assert getattr(note, name) == f"{name} text"


def test_structured_reply_non_string_values_are_rendered() -> None:
    reply = json.dumps({
        "subjective": ["Headache", "Nausea"],
        "objective": {"bp": "120/80"},
        "assessment": 42,
        "plan": [],
    })
    note = extract(reply)
    assert note.subjective == "Headache\nNausea"
    assert note.objective == '{"bp": "120/80"}'
    assert note.assessment == "42"
    assert note.plan == _fallback("plan")


def test_decode_reply_tags_structured_and_heuristic_results() -> None:
    assert isinstance(decode_reply('{"plan": "Rest."}'), StructuredReply)
    assert isinstance(decode_reply("Plan:\nRest."), HeuristicReply)


def test_json_that_is_not_an_object_uses_line_scan() -> None:
    parsed = decode_reply('["subjective", "plan"]')
    assert isinstance(parsed, HeuristicReply)
    note = extract("42")
    assert note.subjective == _fallback("subjective")


def test_short_prefix_example() -> None:
    note = extract("S: Patient reports headache.\nO: BP 120/80.\n")
    assert note.model_dump() == {
        "subjective": "Patient reports headache.",
        "objective": "BP 120/80.",
        "assessment": "Assessment not clearly identified in transcription.",
        "plan": "Treatment plan not specified in transcription.",
    }


def test_header_lines_followed_by_body_lines() -> None:
    reply = "\n".join([
        "Subjective:",
        "Cough for a week.",
        "O:",
        "Temp 38.2C.",
        "Assessment",
        "Likely viral bronchitis.",
        "Plan:",
        "Fluids and rest.",
    ])
    note = extract(reply)
    assert note.subjective == "Cough for a week."
    assert note.objective == "Temp 38.2C."
    assert note.assessment == "Likely viral bronchitis."
    assert note.plan == "Fluids and rest."


def test_multiple_body_lines_are_joined_with_spaces() -> None:
    sections = scan_sections("Subjective:\n  Fever.  \n\n   \nChills.\n")
    assert sections["subjective"] == "Fever. Chills."


def test_text_before_first_header_is_dropped() -> None:
    reply = "Here is the SOAP note you asked for.\nSure!\nS:\nSore throat.\n"
    note = extract(reply)
    assert note.subjective == "Sore throat."
    for name in FIELDS:
        assert "Sure!" not in getattr(note, name)
        assert "Here is" not in getattr(note, name)


def test_line_matching_several_headers_takes_first_in_priority_order() -> None:
    assert match_header("Objective findings and plan") == Section.OBJECTIVE
    assert match_header("Assessment / Plan") == Section.ASSESSMENT
    assert match_header("p: subjective complaints") == Section.SUBJECTIVE

    sections = scan_sections("Objective and plan\nLungs clear.\n")
    assert sections["objective"] == "Lungs clear."
    assert sections["plan"] == ""


def test_full_name_header_line_is_consumed_whole() -> None:
    sections = scan_sections("**Plan:** Follow up in two weeks.\nRecheck BP.")
    assert sections["plan"] == "Recheck BP."

    note = extract("Subjective: summary line\nPatient reports headache.")
    assert note.subjective == "Patient reports headache."


def test_short_prefix_after_other_keyword_keeps_no_text() -> None:
    sections = scan_sections("p: subjective complaints listed below\nFatigue.")
    assert sections["subjective"] == "Fatigue."
    assert sections["plan"] == ""


def test_header_without_colon_contributes_no_text() -> None:
    sections = scan_sections("The plan is as follows\nRest.")
    assert sections["plan"] == "Rest."


def test_headers_are_case_insensitive_and_tolerate_indentation() -> None:
    sections = scan_sections("   SUBJECTIVE\nDizziness.\n   o: HR 72.")
    assert sections["subjective"] == "Dizziness."
    assert sections["objective"] == "HR 72."


def test_windows_line_endings() -> None:
    note = extract("Subjective:\r\nBack pain.\r\nPlan:\r\nPhysiotherapy.\r\n")
    assert note.subjective == "Back pain."
    assert note.plan == "Physiotherapy."


@pytest.mark.parametrize("reply", [
    "",
    "   ",
    None,
    "{not json",
    '{"subjective": ',
    "[" * 100000,
    "no headers at all\njust text",
    "null",
    "true",
])
def test_extract_never_fails_and_fills_every_field(reply) -> None:
    note = extract(reply)
    for name in FIELDS:
        value = getattr(note, name)
        assert isinstance(value, str)
        assert value.strip()


def test_extract_is_deterministic() -> None:
    reply = "Subjective:\nNausea.\nPlan: Antiemetic."
    assert extract(reply) == extract(reply)


def test_normalize_sections_ignores_unknown_keys() -> None:
    note = normalize_sections({"plan": "Rest.", "summary": "ignored"})
    assert note.plan == "Rest."
    assert "ignored" not in note.model_dump_json()


def test_clinical_note_is_immutable() -> None:
    note = extract('{"plan": "Rest."}')
    with pytest.raises(ValidationError):
        note.plan = "changed"
