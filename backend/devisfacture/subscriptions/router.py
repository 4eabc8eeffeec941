from fastapi import APIRouter

from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.subscriptions.dependencies import SubscriptionServiceDep
from devisfacture.subscriptions.models import SubscriptionOverview

router = APIRouter(tags=["Abonnement"])


@router.get("/me", response_model=SubscriptionOverview)
async def read_my_subscription(current_user: CurrentUserDep, service: SubscriptionServiceDep):
    """Abonnement principal, option premium et droits effectifs."""
    return await service.get_overview(current_user.id)
