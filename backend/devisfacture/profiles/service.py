import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from devisfacture.core.utils import utcnow
from devisfacture.pricing.calculations import requires_vat_exemption_notice, resolve_default_tax_rate
from devisfacture.pricing.constants import VAT_EXEMPTION_NOTICE
from devisfacture.profiles.models import (
    CompanySettings,
    CompanySettingsUpdate,
    DefaultTaxRateRead,
    Profile,
    ProfileUpdate,
)

logger = logging.getLogger(__name__)


class ProfileService:
    """Profil entreprise et paramètres de facturation de l'utilisateur."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_profile(self, user_id: int) -> Optional[Profile]:
        result = await self.db.execute(select(Profile).where(Profile.user_id == user_id))
        return result.scalars().first()

    async def get_settings(self, user_id: int) -> Optional[CompanySettings]:
        result = await self.db.execute(select(CompanySettings).where(CompanySettings.user_id == user_id))
        return result.scalars().first()

    async def get_or_create_profile(self, user_id: int) -> Profile:
        profile = await self.get_profile(user_id)
        if profile is None:
            profile = Profile(user_id=user_id)
            self.db.add(profile)
            await self.db.flush()
        return profile

    async def update_profile(self, user_id: int, data: ProfileUpdate) -> Profile:
        profile = await self.get_or_create_profile(user_id)
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(profile, field, value)
        profile.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(profile)
        logger.info(f"[ProfileService] Profil user {user_id} mis à jour ({', '.join(changes) or 'aucun champ'}).")
        return profile

    async def update_settings(self, user_id: int, data: CompanySettingsUpdate) -> CompanySettings:
        company_settings = await self.get_settings(user_id)
        if company_settings is None:
            company_settings = CompanySettings(user_id=user_id)
            self.db.add(company_settings)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(company_settings, field, value)
        company_settings.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(company_settings)
        logger.info(f"[ProfileService] Paramètres entreprise user {user_id} mis à jour.")
        return company_settings

    async def resolve_tax_rate(self, user_id: int) -> DefaultTaxRateRead:
        profile = await self.get_profile(user_id)
        company_settings = await self.get_settings(user_id)
        rate = resolve_default_tax_rate(
            company_settings.default_tax_rate if company_settings else None,
            profile.default_tax_rate if profile else None,
            profile.tva_applicable if profile else None,
        )
        return DefaultTaxRateRead(
            tax_rate=rate,
            vat_exemption_notice=VAT_EXEMPTION_NOTICE if requires_vat_exemption_notice(rate) else None,
        )
