from enum import Enum

QUOTE_NUMBER_PREFIX = "DEV-"
INVOICE_NUMBER_PREFIX = "FA-"
NUMBER_PADDING = 4

# Tentatives de numérotation en cas de collision concurrente
MAX_NUMBERING_ATTEMPTS = 3


class QuoteStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REFUSED = "refused"

