from enum import Enum


class SubscriptionStatus(str, Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    CANCELED = "canceled"
    EXPIRED = "expired"


class PlanType(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"


# Messages du contrôle d'accès premium
PREMIUM_REQUIRED_MSG = "Option premium requise."
PREMIUM_TRIAL_MSG = "L'option premium est indisponible pendant la période d'essai."
PREMIUM_MAIN_INACTIVE_MSG = "Votre abonnement principal doit être actif pour accéder au premium."
PREMIUM_INACTIVE_MSG = "Option premium inactive. Activez-la pour accéder à cette page."
SUBSCRIPTION_REQUIRED_MSG = "Abonnement requis. Votre période d'essai ou votre abonnement est terminé."
