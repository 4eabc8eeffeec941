"""
Dépendances FastAPI pour l'authentification.

Fournit le service d'authentification et l'utilisateur courant à partir du token JWT.
"""
import logging
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.auth.constants import OAUTH2_TOKEN_URL
from devisfacture.auth.exceptions import InactiveUserException, TokenInvalidException, TokenMissingException
from devisfacture.auth.security import decode_access_token
from devisfacture.auth.service import AuthService
from devisfacture.database import get_db_session
from devisfacture.users.models import User

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=OAUTH2_TOKEN_URL, auto_error=False)


def get_auth_service(db: Annotated[AsyncSession, Depends(get_db_session)]) -> AuthService:
    return AuthService(db=db)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


async def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    auth_service: AuthServiceDep,
) -> User:
    """Vérifie le token JWT et retourne l'utilisateur courant actif."""
    if token is None:
        logger.warning("Token manquant dans la requête.")
        raise TokenMissingException()
    user_id = decode_access_token(token)
    if user_id is None:
        raise TokenInvalidException()
    user = await auth_service.get_user(user_id)
    if user is None:
        logger.warning(f"Token valide mais utilisateur {user_id} introuvable.")
        raise TokenInvalidException()
    if not user.is_active:
        raise InactiveUserException()
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]
