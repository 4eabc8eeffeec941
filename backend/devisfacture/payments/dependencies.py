from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.database import get_db_session
from devisfacture.payments.service import PaymentService


def get_payment_service(db: Annotated[AsyncSession, Depends(get_db_session)]) -> PaymentService:
    return PaymentService(db)


PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
