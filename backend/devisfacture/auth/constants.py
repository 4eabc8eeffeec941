"""
Constantes du module d'authentification.
"""

ERROR_CREDENTIALS_INVALID = "Email ou mot de passe incorrect."
ERROR_TOKEN_INVALID = "Token invalide ou expiré."
ERROR_TOKEN_MISSING = "Authentification requise."
ERROR_USER_INACTIVE = "Compte utilisateur désactivé."

HEADER_WWW_AUTHENTICATE = "WWW-Authenticate"
HEADER_WWW_AUTHENTICATE_VALUE = "Bearer"

OAUTH2_TOKEN_URL = "/api/v1/auth/token"
