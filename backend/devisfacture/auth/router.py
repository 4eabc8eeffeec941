import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from devisfacture.auth.dependencies import AuthServiceDep, CurrentUserDep
from devisfacture.auth.models import Token
from devisfacture.core.exceptions import DomainException, to_http_exception
from devisfacture.users.models import UserCreate, UserRead

logger = logging.getLogger(__name__)

auth_router = APIRouter(tags=["Authentification"])


@auth_router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register(data: UserCreate, auth_service: AuthServiceDep):
    """Crée un compte avec une période d'essai."""
    try:
        return await auth_service.register(data)
    except DomainException as e:
        raise to_http_exception(e)


@auth_router.post("/token", response_model=Token)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    auth_service: AuthServiceDep,
):
    access_token = await auth_service.authenticate(form_data.username, form_data.password)
    return Token(access_token=access_token)


@auth_router.get("/me", response_model=UserRead)
async def read_current_user(current_user: CurrentUserDep):
    return current_user
