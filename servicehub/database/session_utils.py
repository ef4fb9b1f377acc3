"""Dialect lookup for repositories that emit dialect-specific SQL."""

from sqlalchemy.orm import Session


def get_dialect_name(session: Session) -> str:
    """Name of the dialect behind ``session``, e.g. ``postgresql`` or ``sqlite``."""
    return session.get_bind().dialect.name
