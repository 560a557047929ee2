"""
CSV export of patient records for the admin console.

The file opens directly in Excel with Arabic text intact: it starts with a
UTF-8 byte order mark. Rows are written with ``csv`` in QUOTE_NONNUMERIC
mode, so ids and every free-text column are quoted (embedded double quotes
doubled) while numeric cells stay bare.
"""
import csv
import io
from typing import Iterable, List, Union

from core.datetime_utils import format_iso
from schemas.patient_record import PatientRecord
from services.risk_display import LegacyUrgencyAssessment, classify_assessment

CSV_FILENAME = "All_Patient_Records.csv"
BOM = "\ufeff"

CSV_HEADERS = [
    "ID", "UserID", "Timestamp", "Name", "Age",
    "G", "P", "A", "Height", "Pre-Pregnancy Weight", "Current Weight",
    "Headache", "Vision Changes", "Upper Abdominal Pain", "Swelling",
    "Excessive Thirst", "Frequent Urination",
    "Fatigue", "Dizziness", "Shortness of Breath", "Other Symptoms",
    "Systolic BP", "Diastolic BP", "Fasting Glucose", "Hb",
    "OCR Text",
    "Overall Risk (0-1)", "Preeclampsia Risk (0-1)", "GDM Risk (0-1)", "Anemia Risk (0-1)",
    "AI Urgency", "AI Brief Summary", "AI Detailed Report", "Known Diagnosis",
]

Cell = Union[str, int, float]


def _number(value) -> Cell:
    # Missing values export as an empty cell
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _flag(value: bool) -> str:
    return "true" if value else "false"


def record_to_row(record: PatientRecord) -> List[Cell]:
    """One CSV row for a record, in CSV_HEADERS order."""
    symptoms = record.symptoms
    labs = record.lab_results
    ai = record.ai_response
    scores = ai.risk_scores

    assessment = classify_assessment(ai)
    urgency = assessment.urgency if isinstance(assessment, LegacyUrgencyAssessment) else ""

    return [
        record.id, record.user_id, format_iso(record.timestamp),
        record.personal_info.name, _number(record.personal_info.age),
        _number(record.pregnancy_history.g), _number(record.pregnancy_history.p),
        _number(record.pregnancy_history.a),
        _number(record.measurement_data.height),
        _number(record.measurement_data.pre_pregnancy_weight),
        _number(record.measurement_data.current_weight),
        _flag(symptoms.headache), _flag(symptoms.vision_changes),
        _flag(symptoms.upper_abdominal_pain), _flag(symptoms.swelling),
        _flag(symptoms.excessive_thirst), _flag(symptoms.frequent_urination),
        _flag(symptoms.fatigue), _flag(symptoms.dizziness), _flag(symptoms.shortness_of_breath),
        symptoms.other_symptoms or "",
        _number(labs.systolic_bp), _number(labs.diastolic_bp),
        _number(labs.fasting_glucose), _number(labs.hb),
        record.ocr_text or "",
        _number(scores.overall_risk if scores else None),
        _number(scores.preeclampsia_risk if scores else None),
        _number(scores.gdm_risk if scores else None),
        _number(scores.anemia_risk if scores else None),
        urgency,
        ai.brief_summary,
        ai.detailed_report,
        "Yes" if record.known_diagnosis else "No",
    ]


def build_records_csv(records: Iterable[PatientRecord]) -> str:
    """Build the full CSV document, BOM included."""
    buffer = io.StringIO()
    buffer.write(BOM)

    csv.writer(buffer, lineterminator="\n").writerow(CSV_HEADERS)
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for record in records:
        writer.writerow(record_to_row(record))

    return buffer.getvalue()
