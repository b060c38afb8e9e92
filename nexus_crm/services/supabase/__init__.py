"""
Supabase clients: PostgREST for reads and writes, Realtime for change notifications.
"""

from nexus_crm.services.supabase.realtime_client import ChangeEvent, ChangeFeed, RealtimeChangeFeed
from nexus_crm.services.supabase.rest_client import SupabaseError, SupabaseRestClient

__all__ = ["SupabaseRestClient", "SupabaseError", "RealtimeChangeFeed", "ChangeFeed", "ChangeEvent"]
