"""
User store backed by the users table.

- find_by_email(email)
- insert(user)  (unique email enforced by the database)
"""
from typing import Optional

from sqlalchemy import select, insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from saaskit.core.database import session_scope, users
from saaskit.core.errors import DuplicateUser, UserInsertFailed, UserLookupFailed
from saaskit.models.user import User


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        stripe_id=row.stripe_id,
        plan=row.plan,
        created_at=row.created_at,
    )


class UserStore:
    """Read/insert access to users. Never updates or deletes."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def find_by_email(self, email: str) -> Optional[User]:
        """
        Raises:
            UserLookupFailed: The database could not be queried
        """
        try:
            with session_scope(self.engine) as session:
                row = session.execute(select(users).where(users.c.email == email)).first()
        except SQLAlchemyError as e:
            raise UserLookupFailed(f"User lookup failed: {type(e).__name__}") from e
        return _row_to_user(row) if row else None

    def insert(self, user: User) -> User:
        """
        Insert a new user row.

        Raises:
            DuplicateUser: A row with the same email already exists
            UserInsertFailed: Any other database failure
        """
        values = {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "stripe_id": user.stripe_id,
            "plan": user.plan,
        }
        try:
            with session_scope(self.engine) as session:
                session.execute(insert(users).values(**values))
        except IntegrityError as e:
            raise DuplicateUser("User with this email already exists") from e
        except SQLAlchemyError as e:
            raise UserInsertFailed(f"User insert failed: {type(e).__name__}") from e

        return self.find_by_email(user.email) or user
