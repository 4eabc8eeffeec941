import logging

from fastapi import APIRouter

from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.profiles.dependencies import ProfileServiceDep
from devisfacture.profiles.models import (
    CompanySettingsRead,
    CompanySettingsUpdate,
    DefaultTaxRateRead,
    ProfileRead,
    ProfileUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Profil"])


@router.get("/me", response_model=ProfileRead)
async def read_my_profile(service: ProfileServiceDep, current_user: CurrentUserDep):
    profile = await service.get_or_create_profile(current_user.id)
    await service.db.commit()
    return profile


@router.put("/me", response_model=ProfileRead)
async def update_my_profile(service: ProfileServiceDep, current_user: CurrentUserDep, data: ProfileUpdate):
    logger.info(f"API update_my_profile pour user ID: {current_user.id}")
    return await service.update_profile(current_user.id, data)


@router.get("/me/settings", response_model=CompanySettingsRead)
async def read_my_settings(service: ProfileServiceDep, current_user: CurrentUserDep):
    company_settings = await service.get_settings(current_user.id)
    if company_settings is None:
        return CompanySettingsRead(user_id=current_user.id)
    return company_settings


@router.put("/me/settings", response_model=CompanySettingsRead)
async def update_my_settings(service: ProfileServiceDep, current_user: CurrentUserDep, data: CompanySettingsUpdate):
    logger.info(f"API update_my_settings pour user ID: {current_user.id}")
    return await service.update_settings(current_user.id, data)


@router.get("/me/default-tax-rate", response_model=DefaultTaxRateRead)
async def read_default_tax_rate(service: ProfileServiceDep, current_user: CurrentUserDep):
    """Taux de TVA par défaut effectif et mention d'exonération éventuelle."""
    return await service.resolve_tax_rate(current_user.id)
