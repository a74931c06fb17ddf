from enum import StrEnum


class IngestOutcome(StrEnum):
    """Result of the dedup-and-insert primitive for one provider resource."""

    APPLIED = 'applied'
    ALREADY_PROCESSED = 'already_processed'
    IGNORED = 'ignored'
