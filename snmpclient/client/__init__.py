"""SNMP client session engine."""

from .session import (
    Session,
    create_session,
    create_session_with_credential,
    create_session_from_config,
)
from .walk import Walk

__all__ = [
    "Session",
    "Walk",
    "create_session",
    "create_session_with_credential",
    "create_session_from_config",
]
