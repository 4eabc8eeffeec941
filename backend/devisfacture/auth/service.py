import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.auth.exceptions import InactiveUserException, InvalidCredentialsException
from devisfacture.auth.security import create_access_token, get_password_hash, verify_password
from devisfacture.profiles.models import Profile
from devisfacture.subscriptions.repositories import SQLAlchemySubscriptionRepository
from devisfacture.subscriptions.service import SubscriptionService
from devisfacture.users.models import User, UserCreate
from devisfacture.users.repositories import SQLAlchemyUserRepository

logger = logging.getLogger(__name__)


class AuthService:
    """Inscription, connexion et résolution de l'utilisateur courant."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repository = SQLAlchemyUserRepository(db_session=db)
        self.subscription_service = SubscriptionService(SQLAlchemySubscriptionRepository(db_session=db))

    async def register(self, data: UserCreate) -> User:
        """Crée le compte, le profil entreprise et l'abonnement d'essai en une transaction."""
        email = data.email.lower()
        logger.info(f"[AuthService] Inscription de {email}")
        user = User(email=email, name=data.name, password_hash=get_password_hash(data.password))
        await self.user_repository.add(user)

        self.db.add(Profile(user_id=user.id, raison_sociale=data.raison_sociale, email_contact=email))
        await self.subscription_service.start_trial(user.id)

        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"[AuthService] Utilisateur ID {user.id} créé.")
        return user

    async def authenticate(self, email: str, password: str) -> str:
        user = await self.user_repository.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning(f"[AuthService] Échec de connexion pour {email}")
            raise InvalidCredentialsException()
        if not user.is_active:
            raise InactiveUserException()
        return create_access_token(data={"sub": str(user.id)})

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.user_repository.get_by_id(user_id)
