"""
Contact store disciplines.

LocalContactStore keeps every record in the local key-value store;
RemoteContactStore mirrors Supabase and refreshes on change notifications.
"""

from nexus_crm.services.store.base import (
    ConfirmationRequiredError,
    ContactStore,
    NotAuthenticatedError,
    RecordNotFoundError,
    StoreError,
    Table,
)
from nexus_crm.services.store.local_store import LocalContactStore
from nexus_crm.services.store.refresh_scheduler import RefreshScheduler, RefreshState
from nexus_crm.services.store.remote_store import RemoteContactStore

__all__ = [
    "ContactStore",
    "LocalContactStore",
    "RemoteContactStore",
    "RefreshScheduler",
    "RefreshState",
    "Table",
    "StoreError",
    "RecordNotFoundError",
    "ConfirmationRequiredError",
    "NotAuthenticatedError",
]
