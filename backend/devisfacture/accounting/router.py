from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.accounting.models import AccountingSummary, PeriodType
from devisfacture.accounting.service import AccountingService
from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.core.exceptions import DomainException, to_http_exception
from devisfacture.database import get_db_session
from devisfacture.subscriptions.dependencies import require_premium

accounting_router = APIRouter(tags=["Comptabilité"], dependencies=[Depends(require_premium)])


def get_accounting_service(db: Annotated[AsyncSession, Depends(get_db_session)]) -> AccountingService:
    return AccountingService(db)


@accounting_router.get("/summary", response_model=AccountingSummary)
async def read_accounting_summary(
    service: Annotated[AccountingService, Depends(get_accounting_service)],
    current_user: CurrentUserDep,
    period: PeriodType = Query(PeriodType.MONTH),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
):
    """Encaissé, reste à encaisser et taux d'encaissement sur la période."""
    try:
        return await service.get_summary(current_user.id, period=period, start=start, end=end)
    except DomainException as e:
        raise to_http_exception(e)
