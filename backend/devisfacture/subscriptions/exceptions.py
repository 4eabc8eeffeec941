"""
Exceptions du contrôle d'accès par abonnement.

Comme les exceptions d'authentification, elles dérivent directement de HTTPException.
"""
from fastapi import HTTPException, status

from devisfacture.subscriptions.constants import SUBSCRIPTION_REQUIRED_MSG


class SubscriptionRequiredException(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=SUBSCRIPTION_REQUIRED_MSG)


class PremiumRequiredException(HTTPException):
    def __init__(self, reason: str):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=reason)
