"""
Repository for user profile documents mirrored from the identity provider.
"""
import logging
import sqlite3
from typing import Optional

from core.datetime_utils import format_iso, utc_now
from core.exceptions import DatabaseError
from repositories.base import Database
from schemas.user import Role, UserProfile

logger = logging.getLogger(__name__)


class UserProfileRepository:
    """
    Repository for user profiles.

    It should be instantiated via core.dependencies.get_user_repository().
    """

    def __init__(self, db: Database):
        self._db = db

    def upsert_login(
        self,
        user_id: str,
        name: Optional[str] = None,
        role: Role = Role.PATIENT
    ) -> UserProfile:
        """
        Record a sign-in.

        Creates the profile on first sign-in with the given role. Afterwards
        only lastLogin (and the name, when one is given) is refreshed; the
        stored role is kept.

        Returns:
            UserProfile: The profile after the update.
        """
        now = format_iso(utc_now())
        conn = self._db.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO users (id, name, role, created_at, last_login)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    last_login = excluded.last_login,
                    name = COALESCE(excluded.name, users.name)
            """, (user_id, name, Role(role).value, now, now))
            conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to upsert user profile {user_id}: {e}")
            raise DatabaseError(operation="upsert user profile") from e
        finally:
            conn.close()

        return self.get(user_id)

    def get(self, user_id: str) -> Optional[UserProfile]:
        """
        Get a user profile by id.

        Returns:
            Optional[UserProfile]: The profile or None if the user never signed in.
        """
        conn = self._db.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "SELECT id, name, role, created_at, last_login FROM users WHERE id = ?",
                (user_id,)
            )
            row = cursor.fetchone()
        finally:
            conn.close()

        if not row:
            return None
        return UserProfile(
            id=row[0],
            name=row[1],
            role=Role(row[2]),
            created_at=row[3],
            last_login=row[4],
        )
