from devisfacture.subscriptions.constants import SubscriptionStatus

# Événements Stripe projetés sur l'abonnement
CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_CREATED = "customer.subscription.created"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"
INVOICE_PAID = "invoice.paid"

PREMIUM_METADATA_FLAG = "is_premium"

# Statut Stripe -> statut de l'abonnement principal (les autres valent 'active')
STRIPE_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "canceled": SubscriptionStatus.CANCELED,
    "unpaid": SubscriptionStatus.CANCELED,
    "past_due": SubscriptionStatus.EXPIRED,
}

# Messages des sessions de paiement
INVALID_PLAN_MSG = "Plan invalide."
SUBSCRIPTION_NOT_FOUND_MSG = "Abonnement introuvable."
PREMIUM_TRIAL_CHECKOUT_MSG = (
    "L'option premium n'est pas disponible pendant la période d'essai. "
    "Veuillez d'abord souscrire à l'abonnement principal."
)
PREMIUM_MAIN_INACTIVE_CHECKOUT_MSG = "Votre abonnement principal doit être actif pour souscrire à l'option premium."
PORTAL_TRIAL_MSG = "L'option premium n'est pas disponible pendant la période d'essai."
PORTAL_MAIN_INACTIVE_MSG = "Votre abonnement principal doit être actif pour gérer l'option premium."
NO_ACTIVE_PREMIUM_MSG = "Aucune option premium active."
CUSTOMER_NOT_FOUND_MSG = "Client Stripe introuvable."
