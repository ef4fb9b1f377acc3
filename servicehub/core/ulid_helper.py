"""ULID generation helper utilities."""

import ulid

PAYMENT_REFERENCE_PREFIX = "PAY"
DEPOSIT_REFERENCE_PREFIX = "DEP"
WITHDRAWAL_REFERENCE_PREFIX = "WDR"


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return str(ulid.ULID())


def generate_reference(prefix: str = PAYMENT_REFERENCE_PREFIX) -> str:
    """Generate a globally unique ledger reference, e.g. ``PAY-01J9...``."""
    return f"{prefix}-{generate_ulid()}"
