"""
Admin router - all patient records, deletion and CSV export.

Every endpoint requires the API key and a signed-in user with the admin role.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from core.auth import require_admin, verify_api_key
from core.dependencies import get_patient_record_repository
from repositories import PatientRecordRepository
from schemas import PatientRecordView, UserProfile
from services.assessment_service import to_view
from services.export_service import CSV_FILENAME, build_records_csv

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_api_key), Depends(require_admin)],
)


def _matches(record: PatientRecordView, search: Optional[str], risk: Optional[str]) -> bool:
    if search:
        needle = search.strip().lower()
        if needle not in record.personal_info.name.lower() and needle not in record.user_id.lower():
            return False
    if risk and record.risk_display.label.lower() != risk.strip().lower():
        return False
    return True


@router.get(
    "/records",
    response_model=List[PatientRecordView],
    response_model_by_alias=True,
    summary="List all records",
    description="Every patient record, newest first, with its risk display. "
                "Optionally filter by name/user id substring and by risk label."
)
async def list_all_records(
    search: Optional[str] = Query(None, description="Substring of patient name or user id"),
    risk: Optional[str] = Query(None, description="Risk label: High, Moderate, Low, Normal, a legacy urgency, or N/A"),
    record_repo: PatientRecordRepository = Depends(get_patient_record_repository)
):
    views = [to_view(record) for record in record_repo.list_all()]
    return [view for view in views if _matches(view, search, risk)]


@router.delete(
    "/records/{record_id}",
    summary="Delete a record",
    description="Delete a patient record. Returns deleted=false if nothing was deleted."
)
async def delete_record(
    record_id: str,
    admin: UserProfile = Depends(require_admin),
    record_repo: PatientRecordRepository = Depends(get_patient_record_repository)
):
    deleted = record_repo.delete(record_id)
    logger.info(f"Admin {admin.id} deleted record {record_id}: {deleted}")
    return {"deleted": deleted}


@router.get(
    "/records/export.csv",
    summary="Export all records as CSV",
    description="All records as a UTF-8 CSV (with BOM) for spreadsheet tools.",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}}
)
async def export_records_csv(
    record_repo: PatientRecordRepository = Depends(get_patient_record_repository)
):
    content = build_records_csv(record_repo.list_all())
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{CSV_FILENAME}"'}
    )
