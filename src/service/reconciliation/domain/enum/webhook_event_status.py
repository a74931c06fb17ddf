from enum import StrEnum


class WebhookEventStatus(StrEnum):
    RECEIVED = 'received'
    NO_VERIFY = 'no verify'
    MALFORMED = 'malformed'
    PROCESSED = 'processed'
    DUPLICATE = 'duplicate'
    IGNORED = 'ignored'
    FAILED = 'failed'
