"""Database access for Scribe Chat."""

from scribe_chat.db.supabase import SupabaseClient, get_supabase_client

__all__ = ["SupabaseClient", "get_supabase_client"]
