import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from devisfacture.users.exceptions import DuplicateUserEmailException
from devisfacture.users.models import User

logger = logging.getLogger(__name__)


class SQLAlchemyUserRepository:
    """Accès aux utilisateurs."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalars().first()

    async def add(self, user: User) -> User:
        """Ajoute l'utilisateur à la transaction courante (flush, sans commit)."""
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"[UserRepo] Email déjà utilisé: {user.email} ({e.orig})")
            raise DuplicateUserEmailException(user.email)
        return user
