"""
Records router - the signed-in user's own history and report export.

All endpoints require API key authentication and a signed-in user.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Response, UploadFile

from core.auth import get_user_id, verify_api_key
from core.dependencies import get_assessment_service, get_upload_service
from schemas import PatientRecordView
from services import AssessmentService, UploadService
from services.pdf_service import render_region_pdf

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/records",
    tags=["Patient Records"],
    dependencies=[Depends(verify_api_key)],
)

REPORT_PDF_FILENAME = "Medical_Report.pdf"


@router.get(
    "",
    response_model=List[PatientRecordView],
    response_model_by_alias=True,
    summary="List my records",
    description="All records of the signed-in user, newest first, each with its risk display."
)
async def list_my_records(
    user_id: str = Depends(get_user_id),
    service: AssessmentService = Depends(get_assessment_service)
):
    return service.history(user_id)


@router.get(
    "/latest",
    response_model=Optional[PatientRecordView],
    response_model_by_alias=True,
    summary="Home summary",
    description="The signed-in user's newest record with its risk display, or null before the first assessment."
)
async def latest_record(
    user_id: str = Depends(get_user_id),
    service: AssessmentService = Depends(get_assessment_service)
):
    return service.latest(user_id)


@router.post(
    "/report.pdf",
    summary="Export a report as PDF",
    description="Upload a captured image of the report area and get back a single-page A4 PDF. "
                "Content taller than one page is cut off.",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}}
)
async def export_report_pdf(
    file: UploadFile = File(..., description="Captured report area (PNG or JPEG)"),
    user_id: str = Depends(get_user_id),
    upload_service: UploadService = Depends(get_upload_service)
):
    content, _ = await upload_service.read_image(file)
    pdf_bytes = render_region_pdf(content)
    logger.info(f"Rendered report PDF for user {user_id} ({len(pdf_bytes)} bytes)")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{REPORT_PDF_FILENAME}"'}
    )
