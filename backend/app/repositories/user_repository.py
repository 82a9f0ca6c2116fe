"""
User Repository - Data Access Layer for storefront accounts

Password hashes and refresh tokens stay inside the repository/service layer;
the User domain model never carries them.
"""
from typing import Optional, Tuple

from app.core.database import get_db_connection_dict
from app.domain.user import User


USER_COLUMNS = "id, name, email, role, created_at, updated_at"


class UserRepository:
    """Repository for User data access"""

    @staticmethod
    def _map_row_to_user(row: dict) -> User:
        return User(
            id=row['id'],
            name=row['name'],
            email=row['email'],
            role=row['role'],
            created_at=row['created_at'],
            updated_at=row.get('updated_at')
        )

    def find_by_id(self, user_id: int) -> Optional[User]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = %s", (user_id,))
            row = cursor.fetchone()
            return self._map_row_to_user(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_credentials(self, email: str) -> Optional[Tuple[User, str]]:
        """
        Find a user and their password hash by email

        Returns:
            (User, password_hash) or None if no account uses this email
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {USER_COLUMNS}, password_hash
                FROM users
                WHERE email = %s
            """, (email,))
            row = cursor.fetchone()
            if not row:
                return None
            return self._map_row_to_user(row), row['password_hash']

        finally:
            cursor.close()
            conn.close()

    def exists_by_email(self, email: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT 1 FROM users WHERE email = %s", (email,))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def create(self, name: str, email: str, password_hash: str, role: str = "user") -> User:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO users (name, email, password_hash, role, created_at, updated_at)
                VALUES (%s, %s, %s, %s, NOW(), NOW())
                RETURNING {USER_COLUMNS}
            """, (name, email, password_hash, role))
            user = self._map_row_to_user(cursor.fetchone())
            conn.commit()
            return user

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def get_refresh_token(self, user_id: int) -> Optional[str]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT refresh_token FROM users WHERE id = %s", (user_id,))
            row = cursor.fetchone()
            return row['refresh_token'] if row else None

        finally:
            cursor.close()
            conn.close()

    def set_refresh_token(self, user_id: int, refresh_token: Optional[str]) -> None:
        """Store the current refresh token (None on logout)"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE users
                SET refresh_token = %s, updated_at = NOW()
                WHERE id = %s
            """, (refresh_token, user_id))
            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()
