"""
Tests for the history summary passed to the model as context.
"""
from datetime import datetime, timezone

from schemas import PatientRecord
from services.history_summary import FIRST_VISIT_SUMMARY, summarize_history


def make_record(day, current_weight=68, labs=None, ai_response=None):
    return PatientRecord.model_validate({
        "id": f"rec-{day}",
        "userId": "patient-1",
        "timestamp": datetime(2024, 3, day, 9, 30, tzinfo=timezone.utc),
        "personalInfo": {"name": "سارة", "age": 25},
        "pregnancyHistory": {"g": 1, "p": 0, "a": 0},
        "measurementData": {"height": 165, "prePregnancyWeight": 60, "currentWeight": current_weight},
        "labResults": labs or {},
        "aiResponse": ai_response if ai_response is not None else {"riskScores": {"overallRisk": 0.3}},
    })


def test_empty_history_is_first_visit():
    assert summarize_history([]) == FIRST_VISIT_SUMMARY


def test_single_record():
    record = make_record(5, labs={"systolicBp": 120, "diastolicBp": 80})
    assert summarize_history([record]) == (
        "Patient History (1 previous visit):\n"
        "  1. Mar 05, 2024: Weight: 68kg, BP: 120/80, Risk: 0.30"
    )


def test_blood_pressure_omitted_unless_both_values_present():
    summary = summarize_history([
        make_record(5, labs={"systolicBp": 120}),
        make_record(4),
    ])
    assert "BP:" not in summary


def test_records_listed_in_given_order():
    summary = summarize_history([
        make_record(20, current_weight=70.5),
        make_record(1, current_weight=66),
    ])
    lines = summary.splitlines()

    assert lines[0] == "Patient History (2 previous visits):"
    assert lines[1].startswith("  1. Mar 20, 2024: Weight: 70.5kg")
    assert lines[2].startswith("  2. Mar 01, 2024: Weight: 66kg")


def test_legacy_and_missing_risk():
    summary = summarize_history([
        make_record(2, ai_response={"urgency": "Medium"}),
        make_record(1, ai_response={}),
    ])
    lines = summary.splitlines()

    assert lines[1].endswith("Risk: Medium")
    assert lines[2].endswith("Risk: N/A")
