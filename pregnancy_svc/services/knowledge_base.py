"""
Medical reference text and helpers shared by the assessment and chat prompts.

Nothing here scores risk: the reference text is given to the model as
context, and the helpers only derive values (BMI, trimester, symptom labels)
that are shown in the prompt.
"""
from typing import Dict, List, NamedTuple, Optional


MEDICAL_KB = """
--- General Pregnancy Information ---
- Normal pregnancy duration is 40 weeks.
- Healthy weight gain is typically 11-16 kg.
- Fetal movements should be felt daily, typically starting around 18-25 weeks. The 'count to 10' method is common: 10 movements in 2 hours is a good sign.

--- Blood Pressure (BP) ---
- Normal BP: < 120/80 mmHg
- Elevated BP: 120-129 / < 80 mmHg
- Hypertension Stage 1: 130-139 / 80-89 mmHg
- **Preeclampsia Risk**: A reading of >= 140/90 mmHg after 20 weeks gestation is a major warning sign. Requires immediate medical attention. Other symptoms include severe headaches, vision changes, and upper abdominal pain.

--- Blood Glucose ---
- **Gestational Diabetes Mellitus (GDM)** screening is crucial.
- Normal Fasting Blood Glucose: < 92 mg/dL
- GDM diagnosis if Fasting Glucose is >= 92 mg/dL.
- Values between 92-125 mg/dL on fasting test suggest GDM.

--- Hemoglobin (Hb) ---
- Anemia is common in pregnancy.
- Normal Hb levels:
  - 1st Trimester: > 11 g/dL
  - 2nd Trimester: > 10.5 g/dL
  - 3rd Trimester: > 11 g/dL
- Mild Anemia: Hb 10.0-10.9 g/dL
- Moderate Anemia: Hb 7.0-9.9 g/dL. May require iron supplements and follow-up.
- Severe Anemia: Hb < 7.0 g/dL. High risk, requires urgent medical intervention.

--- Urgency Levels ---
- **High Urgency**: Conditions that could be life-threatening. E.g., BP >= 140/90, severe anemia, severe headache, no fetal movement for a long period. Advise immediate contact with a doctor or emergency services.
- **Medium Urgency**: Abnormal but not immediately life-threatening values. E.g., mild/moderate anemia, elevated fasting glucose. Advise scheduling a doctor's appointment soon.
- **Low Urgency**: Minor symptoms or slight deviations from normal. E.g., mild morning sickness, slight fatigue. Advise monitoring and mentioning at the next check-up.
- **Normal**: All values and symptoms are within healthy ranges. Reassure the patient.
"""


class SymptomInfo(NamedTuple):
    label: str
    condition: str
    severity: str


# Keyed by the Symptoms model attribute name
SYMPTOMS: Dict[str, SymptomInfo] = {
    "headache": SymptomInfo("Severe headache", "preeclampsia", "high"),
    "vision_changes": SymptomInfo("Vision changes", "preeclampsia", "high"),
    "upper_abdominal_pain": SymptomInfo("Upper abdominal pain", "preeclampsia", "high"),
    "swelling": SymptomInfo("Swelling of face/hands", "preeclampsia", "medium"),
    "excessive_thirst": SymptomInfo("Excessive thirst", "gdm", "medium"),
    "frequent_urination": SymptomInfo("Frequent urination", "gdm", "low"),
    "fatigue": SymptomInfo("Fatigue", "anemia", "low"),
    "dizziness": SymptomInfo("Dizziness", "anemia", "medium"),
    "shortness_of_breath": SymptomInfo("Shortness of breath", "anemia", "medium"),
}


def reported_symptoms(symptoms) -> List[SymptomInfo]:
    """Return the checklist entries flagged true on a Symptoms model."""
    return [info for key, info in SYMPTOMS.items() if getattr(symptoms, key, False)]


def red_flag_symptoms(symptoms) -> List[SymptomInfo]:
    """Reported symptoms that warrant immediate attention."""
    return [info for info in reported_symptoms(symptoms) if info.severity == "high"]


def calculate_bmi(height_cm: float, weight_kg: float) -> Optional[float]:
    """BMI in kg/m², or None when the inputs cannot produce one."""
    if not height_cm or not weight_kg or height_cm <= 0 or weight_kg <= 0:
        return None
    height_m = height_cm / 100
    return weight_kg / (height_m * height_m)


def bmi_category(bmi: Optional[float]) -> str:
    """WHO adult BMI category."""
    if bmi is None:
        return "Unknown"
    if bmi < 18.5:
        return "Underweight"
    if bmi < 25:
        return "Normal weight"
    if bmi < 30:
        return "Overweight"
    return "Obese"


def trimester(pregnancy_week: Optional[int]) -> Optional[str]:
    if not pregnancy_week:
        return None
    if pregnancy_week <= 13:
        return "First"
    if pregnancy_week <= 27:
        return "Second"
    return "Third"
