"""
Repository for patient record documents.

Architecture:
    PatientRecordRepository is the data access layer for patient records.
    It should be injected via core.dependencies.get_patient_record_repository().

Records are immutable once created. The id and timestamp are assigned here,
never by the client. Read and delete failures are logged and reported as an
empty result / False so the UI can keep rendering.
"""
import json
import logging
import sqlite3
import uuid
from typing import List, Optional

from pydantic import ValidationError

from core.datetime_utils import format_iso, utc_now
from core.exceptions import DatabaseError, MissingOwnerError
from repositories.base import Database
from schemas.patient_record import NewPatientRecord, PatientRecord

logger = logging.getLogger(__name__)

# Stored outside the JSON document, in indexed columns.
_ROW_FIELDS = {"id", "user_id", "timestamp"}


class PatientRecordRepository:
    """
    Repository for patient record create/list/delete operations.

    It should be instantiated via core.dependencies.get_patient_record_repository().
    """

    def __init__(self, db: Database):
        """
        Initialize the patient record repository.

        Args:
            db: Database instance for data access.
                Injected via core.dependencies.get_patient_record_repository().
        """
        self._db = db

    def create(self, record: NewPatientRecord) -> PatientRecord:
        """
        Store a new record and return it with its id and timestamp.

        Args:
            record: Complete record including the AI response.

        Returns:
            PatientRecord: The stored record.

        Raises:
            MissingOwnerError: If the record has no userId.
            DatabaseError: If the insert fails.
        """
        if not record.user_id:
            raise MissingOwnerError()

        record_id = uuid.uuid4().hex
        timestamp = utc_now()
        document = record.model_dump(mode="json", by_alias=True, exclude=_ROW_FIELDS)

        conn = self._db.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO patient_records (id, user_id, timestamp, document)
                VALUES (?, ?, ?, ?)
            """, (record_id, record.user_id, format_iso(timestamp), json.dumps(document, ensure_ascii=False)))
            conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to save patient record for user {record.user_id}: {e}")
            raise DatabaseError(operation="create patient record") from e
        finally:
            conn.close()

        logger.info(
            "Patient record created",
            extra={"record_id": record_id, "user_id": record.user_id}
        )

        return PatientRecord.model_validate({
            **document,
            "id": record_id,
            "userId": record.user_id,
            "timestamp": timestamp,
        })

    def list_by_user(self, user_id: str) -> List[PatientRecord]:
        """
        Get a user's records, newest first.

        Returns:
            List[PatientRecord]: Possibly empty; also empty when the read fails.
        """
        return self._list(
            "WHERE user_id = ?",
            (user_id,),
            f"records for user {user_id}"
        )

    def list_all(self) -> List[PatientRecord]:
        """
        Get every record, newest first. Admin use only.

        Returns:
            List[PatientRecord]: Possibly empty; also empty when the read fails.
        """
        return self._list("", (), "all records")

    def get(self, record_id: str) -> Optional[PatientRecord]:
        """
        Get a single record by id.

        Returns:
            Optional[PatientRecord]: The record or None if not found.
        """
        conn = self._db.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "SELECT id, user_id, timestamp, document FROM patient_records WHERE id = ?",
                (record_id,)
            )
            row = cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to read patient record {record_id}: {e}")
            return None
        finally:
            conn.close()

        if not row:
            return None
        return self._row_to_record(row)

    def delete(self, record_id: str) -> bool:
        """
        Delete a record.

        Returns:
            bool: True if a record was deleted, False if none matched or the delete failed.
        """
        conn = self._db.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM patient_records WHERE id = ?", (record_id,))
            conn.commit()
            deleted = cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"Failed to delete patient record {record_id}: {e}")
            return False
        finally:
            conn.close()

        if deleted:
            logger.info("Patient record deleted", extra={"record_id": record_id})
        return deleted

    def _list(self, where: str, params: tuple, description: str) -> List[PatientRecord]:
        conn = self._db.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT id, user_id, timestamp, document FROM patient_records
                {where}
                ORDER BY timestamp DESC, rowid DESC
            """, params)
            rows = cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to read {description}: {e}")
            return []
        finally:
            conn.close()

        records = []
        for row in rows:
            record = self._row_to_record(row)
            if record is not None:
                records.append(record)
        return records

    @staticmethod
    def _row_to_record(row: tuple) -> Optional[PatientRecord]:
        record_id, user_id, timestamp, document = row
        try:
            data = json.loads(document)
            return PatientRecord.model_validate({
                **data,
                "id": record_id,
                "userId": user_id,
                "timestamp": timestamp,
            })
        except (ValueError, ValidationError) as e:
            # Skip unreadable documents rather than failing the whole listing
            logger.warning(f"Skipping unreadable patient record {record_id}: {e}")
            return None
