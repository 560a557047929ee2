"""
Persistence for patient records and mirrored user profiles. All SQL lives here.
"""
from repositories.patient_record_repository import PatientRecordRepository
from repositories.user_repository import UserProfileRepository
from repositories.base import Database

__all__ = [
    "PatientRecordRepository",
    "UserProfileRepository",
    "Database",
]
