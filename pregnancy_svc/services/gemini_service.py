"""
Service wrapping Google Gemini for risk assessment, the chat assistant and lab-report OCR.

Risk scoring is done entirely by the model. This module builds the prompt,
asks for structured JSON output, and checks the reply shape before anything
is stored. Replies are parsed by parse_assessment_reply(), a pure function
returning a tagged result, so the shape rules can be tested without a network.
"""
import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Union

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.generativeai.types import BlockedPromptException, StopCandidateException
from PIL import Image
from pydantic import ValidationError

from core.config import settings
from core.exceptions import (
    AIServiceNotConfiguredError,
    AnalysisError,
    AnalysisResponseError,
    AnalysisUnavailableError,
)
from core.middleware import get_metrics_collector
from schemas.ai_response import AIResponse
from schemas.patient_record import AssessmentInput, PatientRecord
from services import knowledge_base as kb
from services.history_summary import summarize_history

logger = logging.getLogger(__name__)


ASSESSMENT_SYSTEM_PROMPT = (
    "You are an expert Obstetrician AI Assistant specializing in high-risk pregnancy "
    "assessment. You provide evidence-based medical analysis in Arabic."
)

ASSESSMENT_TEMPERATURE = 0.3
CHAT_TEMPERATURE = 0.7

RISK_SCORE_KEYS = ("overallRisk", "preeclampsiaRisk", "gdmRisk", "anemiaRisk")

_NULLABLE_NUMBER = {"type": "NUMBER", "nullable": True}

# Passed as response_schema so the model returns exactly this object
ASSESSMENT_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "riskScores": {
            "type": "OBJECT",
            "properties": {key: {"type": "NUMBER"} for key in RISK_SCORE_KEYS},
            "required": list(RISK_SCORE_KEYS),
        },
        "brief_summary": {"type": "STRING"},
        "detailed_report": {"type": "STRING"},
        "extracted_labs": {
            "type": "OBJECT",
            "properties": {
                "systolicBp": _NULLABLE_NUMBER,
                "diastolicBp": _NULLABLE_NUMBER,
                "fastingGlucose": _NULLABLE_NUMBER,
                "hb": _NULLABLE_NUMBER,
            },
        },
    },
    "required": ["riskScores", "brief_summary", "detailed_report", "extracted_labs"],
}

OCR_PROMPT = """
You are a medical OCR engine. Read the uploaded laboratory report image and
transcribe the test results it contains.

- Output plain text only, one test per line: "<test name>: <result> <unit>".
- Include blood pressure, fasting blood sugar and hemoglobin when present.
- Do NOT interpret, diagnose or add values that are not visible.
- If the image has no readable lab results, output nothing.
"""

# Arabic messages for failures that are not reachability or shape problems
QUOTA_MESSAGE = "تم تجاوز حد الاستخدام. يرجى المحاولة لاحقاً."
API_KEY_MESSAGE = "مفتاح API غير صالح. يرجى التحقق من الإعدادات."
NO_TEXT_MESSAGE = "لم يتم التعرف على أي نص في الصورة. يرجى رفع صورة أوضح."


# =============================================================================
# REPLY PARSING
# =============================================================================

@dataclass(frozen=True)
class ParsedAssessment:
    ai_response: AIResponse


@dataclass(frozen=True)
class ParseFailure:
    reason: str


AssessmentParseResult = Union[ParsedAssessment, ParseFailure]


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def parse_assessment_reply(raw: str) -> AssessmentParseResult:
    """
    Parse and shape-check the model's assessment reply.

    Returns:
        ParsedAssessment on success, ParseFailure with a reason otherwise.
    """
    text = (raw or "").strip()

    # The model may still wrap the object in prose or code fences
    start_index = text.find('{')
    end_index = text.rfind('}')
    if start_index != -1 and end_index > start_index:
        text = text[start_index:end_index + 1]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return ParseFailure(f"Reply is not valid JSON: {e}")

    if not isinstance(data, dict):
        return ParseFailure("Reply is not a JSON object")

    scores = data.get("riskScores")
    if not isinstance(scores, dict):
        return ParseFailure("riskScores is missing")
    if scores.get("overallRisk") is None:
        return ParseFailure("riskScores.overallRisk is missing")
    if not data.get("brief_summary"):
        return ParseFailure("brief_summary is missing")
    if not data.get("detailed_report"):
        return ParseFailure("detailed_report is missing")

    for key in RISK_SCORE_KEYS:
        value = scores.get(key)
        if value is None:
            continue
        if not _is_number(value) or not 0 <= value <= 1:
            return ParseFailure(f"riskScores.{key} is not a number in [0, 1]: {value!r}")

    if data.get("extracted_labs") is None:
        data["extracted_labs"] = {}

    try:
        ai_response = AIResponse.model_validate(data)
    except ValidationError as e:
        return ParseFailure(f"Reply does not match the assessment schema: {e.error_count()} error(s)")

    return ParsedAssessment(ai_response=ai_response)


# =============================================================================
# PROMPT BUILDING
# =============================================================================

def _value_or_na(value) -> str:
    if not value:
        return "N/A"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_symptoms(candidate: AssessmentInput) -> str:
    items = [f"{s.label} ({s.severity} severity)" for s in kb.reported_symptoms(candidate.symptoms)]
    if candidate.symptoms.other_symptoms.strip():
        items.append(f"Other: {candidate.symptoms.other_symptoms.strip()}")
    return ", ".join(items) if items else "No symptoms reported"


def build_assessment_prompt(candidate: AssessmentInput, history_summary: str) -> str:
    """Assemble the assessment prompt for one candidate record."""
    info = candidate.personal_info
    history = candidate.pregnancy_history
    measurements = candidate.measurement_data
    labs = candidate.lab_results

    pre_bmi = kb.calculate_bmi(measurements.height, measurements.pre_pregnancy_weight)
    current_bmi = kb.calculate_bmi(measurements.height, measurements.current_weight)
    weight_gain = measurements.current_weight - measurements.pre_pregnancy_weight
    trimester = kb.trimester(info.pregnancy_week)
    red_flags = kb.red_flag_symptoms(candidate.symptoms)

    pre_bmi_text = f"{pre_bmi:.1f}" if pre_bmi else "N/A"
    current_bmi_text = f"{current_bmi:.1f}" if current_bmi else "N/A"

    lines = [
        "**CONTEXT:** Analyze the health record of a pregnant patient. Base your analysis "
        "STRICTLY on the provided data and medical knowledge base. Provide risk assessment "
        "and recommendations.",
        "",
        "**MEDICAL KNOWLEDGE BASE:**",
        kb.MEDICAL_KB.strip(),
        "",
        "**PATIENT'S CURRENT DATA:**",
        "",
        "1. Personal Information:",
        f"   - Name: {info.name}",
        f"   - Age: {info.age} years",
        f"   - Pregnancy Week: {info.pregnancy_week or 'Not specified'}",
    ]
    if trimester:
        lines.append(f"   - Trimester: {trimester}")
    lines += [
        f"   - Known Diagnosis: {'Yes' if candidate.known_diagnosis else 'No'}",
        "",
        "2. Pregnancy History:",
        f"   - Gravida (G): {history.g}",
        f"   - Para (P): {history.p}",
        f"   - Abortions (A): {history.a}",
        "",
        "3. Physical Measurements:",
        f"   - Height: {_value_or_na(measurements.height)} cm",
        f"   - Pre-pregnancy Weight: {_value_or_na(measurements.pre_pregnancy_weight)} kg",
        f"   - Pre-pregnancy BMI: {pre_bmi_text} ({kb.bmi_category(pre_bmi)})",
        f"   - Current Weight: {_value_or_na(measurements.current_weight)} kg",
        f"   - Current BMI: {current_bmi_text} ({kb.bmi_category(current_bmi)})",
        f"   - Weight Gain: {'+' if weight_gain > 0 else ''}{weight_gain:.1f} kg",
        "",
        "4. Reported Symptoms:",
        f"   {_format_symptoms(candidate)}",
    ]
    if red_flags:
        lines.append(f"   RED FLAG SYMPTOMS: {', '.join(s.label for s in red_flags)}")
    lines += [
        "",
        "5. Laboratory Results (Manual Input):",
        f"   - Blood Pressure: {_value_or_na(labs.systolic_bp)}/{_value_or_na(labs.diastolic_bp)} mmHg",
        f"   - Fasting Glucose: {_value_or_na(labs.fasting_glucose)} mg/dL",
        f"   - Hemoglobin: {_value_or_na(labs.hb)} g/dL",
        "",
        "6. Laboratory Results (OCR Extracted):",
        f"   {(candidate.ocr_text or '').strip() or 'No OCR data available'}",
        "",
        "**PATIENT'S HISTORICAL RECORDS:**",
        history_summary,
        "",
        "**ANALYSIS REQUIREMENTS:**",
        "1. Consider ALL risk factors: maternal age, BMI and weight gain, blood pressure, "
        "blood glucose, hemoglobin, reported symptoms (especially red flags), pregnancy "
        "history and trends across previous visits.",
        "2. Higher scores should only be given when clear risk factors are present.",
        "3. If red flag symptoms are present, emphasize urgency in the report.",
        "",
        "**OUTPUT FORMAT:**",
        "Return ONLY a valid JSON object with this exact structure:",
        "{",
        '  "riskScores": {',
        '    "overallRisk": <number between 0.0 and 1.0>,',
        '    "preeclampsiaRisk": <number between 0.0 and 1.0>,',
        '    "gdmRisk": <number between 0.0 and 1.0>,',
        '    "anemiaRisk": <number between 0.0 and 1.0>',
        "  },",
        '  "brief_summary": "<2-3 sentences in Arabic>",',
        '  "detailed_report": "<detailed report in Arabic with markdown formatting (##, *, -)>",',
        '  "extracted_labs": {',
        '    "systolicBp": <number or null>,',
        '    "diastolicBp": <number or null>,',
        '    "fastingGlucose": <number or null>,',
        '    "hb": <number or null>',
        "  }",
        "}",
        "All text fields MUST be in Arabic. Return ONLY valid JSON, no additional text.",
    ]
    return "\n".join(lines)


# =============================================================================
# SERVICE
# =============================================================================

def map_google_error(exc: Exception) -> AnalysisError:
    """Translate a Gemini client exception into the service's analysis errors."""
    if isinstance(exc, (google_exceptions.ServiceUnavailable,
                        google_exceptions.DeadlineExceeded,
                        ConnectionError,
                        TimeoutError)):
        return AnalysisUnavailableError()
    if isinstance(exc, google_exceptions.ResourceExhausted):
        return AnalysisError(QUOTA_MESSAGE)
    if isinstance(exc, (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied)):
        return AnalysisError(API_KEY_MESSAGE)
    if isinstance(exc, google_exceptions.InvalidArgument) and "API key" in str(exc):
        return AnalysisError(API_KEY_MESSAGE)
    return AnalysisError()


class GeminiService:
    """Service for Gemini-backed assessment, chat and OCR."""

    def __init__(self, api_key: str | None = None, model_name: str | None = None):
        """
        Initialize the Gemini service.

        Args:
            api_key: Google Gemini API key. If not provided, loads from settings.
            model_name: Gemini model name. If not provided, loads from settings.

        Raises:
            AIServiceNotConfiguredError: If no API key is available.
        """
        self.api_key = api_key or settings.gemini_api_key
        if not self.api_key:
            raise AIServiceNotConfiguredError()

        genai.configure(api_key=self.api_key)

        self.model_name = model_name or settings.gemini_model
        self.assessment_model = genai.GenerativeModel(
            self.model_name,
            system_instruction=ASSESSMENT_SYSTEM_PROMPT
        )
        self.ocr_model = genai.GenerativeModel(self.model_name)

    async def request_assessment(
        self,
        candidate: AssessmentInput,
        history: Sequence[PatientRecord]
    ) -> AIResponse:
        """
        Ask the model for a risk assessment of a candidate record.

        Args:
            candidate: The submitted data, without id, timestamp or AI response.
            history: The user's prior records, in any order.

        Returns:
            AIResponse: The validated reply.

        Raises:
            AnalysisUnavailableError: The service could not be reached.
            AnalysisResponseError: The reply was not a usable assessment.
            AnalysisError: Any other failure.
        """
        prompt = build_assessment_prompt(candidate, summarize_history(history))
        metrics = get_metrics_collector()

        logger.info(
            "Requesting risk assessment",
            extra={"history_count": len(history), "model": self.model_name}
        )

        try:
            response = await self.assessment_model.generate_content_async(
                prompt,
                generation_config=genai.GenerationConfig(
                    temperature=ASSESSMENT_TEMPERATURE,
                    response_mime_type="application/json",
                    response_schema=ASSESSMENT_RESPONSE_SCHEMA,
                )
            )
            raw = response.text
        except Exception as e:
            metrics.record_ai_call("assessment", success=False)
            logger.error(f"Gemini assessment call failed: {e}", exc_info=True)
            raise map_google_error(e) from e

        result = parse_assessment_reply(raw)
        if isinstance(result, ParseFailure):
            metrics.record_ai_call("assessment", success=False)
            logger.error(f"Invalid assessment reply: {result.reason}")
            raise AnalysisResponseError(reason=result.reason)

        metrics.record_ai_call("assessment", success=True)
        logger.info(
            "Risk assessment completed",
            extra={"overall_risk": result.ai_response.risk_scores.overall_risk}
        )
        return result.ai_response

    def start_chat(self, system_instruction: str):
        """
        Open a new multi-turn chat seeded with a system instruction.

        Returns:
            genai.ChatSession: The session; history is kept by the session itself.
        """
        model = genai.GenerativeModel(
            self.model_name,
            system_instruction=system_instruction,
            generation_config=genai.GenerationConfig(temperature=CHAT_TEMPERATURE)
        )
        return model.start_chat(history=[])

    async def extract_lab_text(self, image_path: str) -> str:
        """
        Recognize the text of a lab-report image.

        Args:
            image_path: Path to the uploaded image.

        Returns:
            str: Recognized text, one test per line.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            AnalysisUnavailableError: The service could not be reached.
            AnalysisResponseError: No text was recognized.
            AnalysisError: Any other failure.
        """
        path = Path(image_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {image_path}")

        metrics = get_metrics_collector()
        logger.info(f"Sending lab report image to Gemini for OCR: {image_path}")

        try:
            with Image.open(path) as image:
                image.load()
                response = await self.ocr_model.generate_content_async([OCR_PROMPT, image])
            text = response.text.strip()
        except Exception as e:
            metrics.record_ai_call("ocr", success=False)
            logger.error(f"Gemini OCR call failed for {image_path}: {e}", exc_info=True)
            raise map_google_error(e) from e

        if not text:
            metrics.record_ai_call("ocr", success=False)
            raise AnalysisResponseError(NO_TEXT_MESSAGE)

        metrics.record_ai_call("ocr", success=True)
        logger.info(f"OCR extracted {len(text)} characters from {image_path}")
        return text


def is_safety_block(exc: Exception) -> bool:
    """True when the model refused to answer for safety reasons."""
    return isinstance(exc, (BlockedPromptException, StopCandidateException))
