"""
Input validation for assessment submissions.

One validator per form step, each returning every problem it finds as an
Arabic message. validate_assessment_input() runs all of them so a client can
highlight every invalid field at once. Lab values are optional: a missing or
zero value is skipped.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from schemas.patient_record import AssessmentInput

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Outcome of one validator."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def _result(errors: List[str]) -> ValidationResult:
    return ValidationResult(is_valid=not errors, errors=errors)


def validate_personal_info(name: str, age: Optional[int]) -> ValidationResult:
    """Step 1: name of at least two characters, age in (10, 60]."""
    errors = []
    if len((name or "").strip()) < 2:
        errors.append("يجب إدخال الاسم الكامل.")
    if not age or age <= 10 or age > 60:
        errors.append("يرجى إدخال عمر صحيح (بين 10 و 60).")
    return _result(errors)


def validate_pregnancy_history(g: int, p: int, a: int) -> ValidationResult:
    """Step 2: non-negative counts with births plus abortions not exceeding pregnancies."""
    errors = []
    if g < 0 or p < 0 or a < 0:
        errors.append("لا يمكن أن تكون قيم تاريخ الحمل سلبية.")
    if p + a > g:
        errors.append("يجب أن يكون مجموع الولادات والإجهاض مساوياً أو أقل من عدد مرات الحمل.")
    return _result(errors)


def validate_measurements(
    height: Optional[float],
    pre_weight: Optional[float],
    current_weight: Optional[float]
) -> ValidationResult:
    """Step 3: height 100-250 cm, weights 30-200 kg (before) and 30-250 kg (now)."""
    errors = []
    if not height or height < 100 or height > 250:
        errors.append("يرجى إدخال طول صحيح (بين 100 و 250 سم).")
    if not pre_weight or pre_weight < 30 or pre_weight > 200:
        errors.append("يرجى إدخال وزن صحيح قبل الحمل (بين 30 و 200 كجم).")
    if not current_weight or current_weight < 30 or current_weight > 250:
        errors.append("يرجى إدخال وزن حالي صحيح (بين 30 و 250 كجم).")
    return _result(errors)


def validate_lab_results(
    systolic: Optional[float] = None,
    diastolic: Optional[float] = None,
    glucose: Optional[float] = None,
    hb: Optional[float] = None
) -> ValidationResult:
    """Step 5: optional lab values, range-checked only when entered."""
    errors = []
    if systolic and (systolic < 70 or systolic > 250):
        errors.append("ضغط الدم الانقباضي غير منطقي (يجب أن يكون بين 70 و 250).")
    if diastolic and (diastolic < 40 or diastolic > 150):
        errors.append("ضغط الدم الانبساطي غير منطقي (يجب أن يكون بين 40 و 150).")
    if systolic and diastolic and systolic < diastolic:
        errors.append("ضغط الدم الانقباضي يجب أن يكون أعلى من الانبساطي.")
    if glucose and (glucose < 50 or glucose > 500):
        errors.append("مستوى سكر الدم غير منطقي (يجب أن يكون بين 50 و 500).")
    if hb and (hb < 5 or hb > 20):
        errors.append("مستوى الهيموجلوبين غير منطقي (يجب أن يكون بين 5 و 20).")
    return _result(errors)


def validate_assessment_input(candidate: AssessmentInput) -> Dict[str, List[str]]:
    """
    Run every step validator against a candidate record.

    Returns:
        Dict[str, List[str]]: Errors keyed by the section's wire name
            (personalInfo, pregnancyHistory, measurementData, labResults).
            Empty when the candidate is valid.
    """
    history = candidate.pregnancy_history
    measurements = candidate.measurement_data
    labs = candidate.lab_results

    results = {
        "personalInfo": validate_personal_info(
            candidate.personal_info.name,
            candidate.personal_info.age
        ),
        "pregnancyHistory": validate_pregnancy_history(history.g, history.p, history.a),
        "measurementData": validate_measurements(
            measurements.height,
            measurements.pre_pregnancy_weight,
            measurements.current_weight
        ),
        "labResults": validate_lab_results(
            labs.systolic_bp,
            labs.diastolic_bp,
            labs.fasting_glucose,
            labs.hb
        ),
    }

    field_errors = {name: result.errors for name, result in results.items() if not result.is_valid}
    if field_errors:
        logger.info(f"Assessment input rejected: {sorted(field_errors)}")
    return field_errors
