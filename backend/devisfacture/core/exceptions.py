"""Exceptions de domaine partagées.

Chaque module métier dérive ses propres exceptions de ces classes de base,
ce qui permet aux routeurs de les traduire en réponses HTTP de façon uniforme.
"""
from fastapi import HTTPException, status


class DomainException(Exception):
    """Classe de base pour toutes les exceptions métier."""
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotFoundError(DomainException):
    """Ressource absente ou n'appartenant pas à l'utilisateur courant."""
    status_code = status.HTTP_404_NOT_FOUND


class InvalidStateError(DomainException):
    """Opération interdite depuis l'état courant de la ressource."""
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(DomainException):
    status_code = status.HTTP_409_CONFLICT


class InvalidAmountError(DomainException):
    status_code = status.HTTP_400_BAD_REQUEST


class ExceedsBalanceError(DomainException):
    status_code = status.HTTP_400_BAD_REQUEST


class ValidationError(DomainException):
    status_code = status.HTTP_400_BAD_REQUEST


class ConfigurationError(DomainException):
    """Configuration externe requise absente (clés Stripe, URL du site...)."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UpstreamError(DomainException):
    """Échec d'un appel à la base de données ou au fournisseur de paiement."""
    status_code = status.HTTP_502_BAD_GATEWAY


def to_http_exception(exc: DomainException) -> HTTPException:
    """Traduit une exception métier en HTTPException (le message reste lisible par l'utilisateur)."""
    return HTTPException(status_code=exc.status_code, detail=exc.message)
