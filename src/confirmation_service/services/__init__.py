"""Business logic services."""

from confirmation_service.services.confirmation_parser import parse_confirmation
from confirmation_service.services.confirmation_processor import ConfirmationProcessor
from confirmation_service.services.confirmation_store import ConfirmationStore
from confirmation_service.services.confirmation_sync import (
    ConfirmationSyncOrchestrator,
    execute_confirmation_sync,
)

__all__ = [
    "parse_confirmation",
    "ConfirmationProcessor",
    "ConfirmationStore",
    "ConfirmationSyncOrchestrator",
    "execute_confirmation_sync",
]
