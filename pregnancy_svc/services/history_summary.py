"""
Condense a patient's prior records into prompt context.

The output is read by the model only and never parsed back.
"""
from typing import Sequence

from core.datetime_utils import format_display_date
from schemas.patient_record import PatientRecord
from services.risk_display import risk_indicator

FIRST_VISIT_SUMMARY = "This is the patient's first visit. No previous records available."


def _format_number(value) -> str:
    # 68.0 -> "68", 68.5 -> "68.5"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_record(index: int, record: PatientRecord) -> str:
    parts = [
        f"Weight: {_format_number(record.measurement_data.current_weight)}kg",
    ]

    labs = record.lab_results
    if labs.systolic_bp and labs.diastolic_bp:
        parts.append(f"BP: {_format_number(labs.systolic_bp)}/{_format_number(labs.diastolic_bp)}")

    parts.append(f"Risk: {risk_indicator(record.ai_response)}")

    return f"  {index}. {format_display_date(record.timestamp)}: " + ", ".join(parts)


def summarize_history(records: Sequence[PatientRecord]) -> str:
    """
    Summarize prior records, one line each, in the order given.

    Returns the first-visit sentinel for an empty sequence.
    """
    if not records:
        return FIRST_VISIT_SUMMARY

    count = len(records)
    header = f"Patient History ({count} previous visit{'s' if count != 1 else ''}):"
    lines = [_format_record(i, record) for i, record in enumerate(records, start=1)]
    return "\n".join([header] + lines)
