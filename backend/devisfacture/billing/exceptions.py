"""Exceptions du module de facturation Stripe."""
from devisfacture.core.exceptions import ConfigurationError, InvalidStateError, UpstreamError, ValidationError


class InvalidPlanException(ValidationError):
    def __init__(self, message: str = "Plan invalide."):
        super().__init__(message)


class BillingStateException(InvalidStateError):
    """Session refusée au vu de l'état de l'abonnement (essai, inactif, client absent...)."""


class BillingNotConfiguredException(ConfigurationError):
    def __init__(self, setting_name: str):
        super().__init__(f"Paiement non configuré : la variable {setting_name} est absente.")
        self.setting_name = setting_name


class WebhookSignatureException(ValidationError):
    def __init__(self, message: str = "Signature du webhook invalide."):
        super().__init__(message)


class BillingProviderException(UpstreamError):
    def __init__(self, detail: str = "Le service de paiement est indisponible. Réessayez plus tard."):
        super().__init__(detail)


class BillingEntityNotFound(Exception):
    """Événement sans utilisateur ou abonnement correspondant : ignoré par le projecteur."""
