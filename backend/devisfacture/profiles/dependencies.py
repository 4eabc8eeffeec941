from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.database import get_db_session
from devisfacture.profiles.service import ProfileService


def get_profile_service(db: Annotated[AsyncSession, Depends(get_db_session)]) -> ProfileService:
    return ProfileService(db=db)


ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]
