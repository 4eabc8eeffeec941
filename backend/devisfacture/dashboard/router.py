from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.dashboard.models import DashboardSummary
from devisfacture.dashboard.service import DashboardService
from devisfacture.database import get_db_session


def get_dashboard_service(db: Annotated[AsyncSession, Depends(get_db_session)]) -> DashboardService:
    return DashboardService(db=db)


DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]

router = APIRouter(tags=["Tableau de bord"])


@router.get("/", response_model=DashboardSummary)
async def read_dashboard(service: DashboardServiceDep, current_user: CurrentUserDep):
    return await service.get_summary(current_user.id)
