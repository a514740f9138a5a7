"""Authentication module for Supabase JWT validation."""

from api.auth.dependencies import (
    get_current_user,
    get_db_user,
    get_optional_user,
    get_owner_scope,
    require_admin,
)
from api.auth.models import AuthUser
from api.auth.supabase import SupabaseAuth, get_supabase_auth

__all__ = [
    "AuthUser",
    "SupabaseAuth",
    "get_current_user",
    "get_db_user",
    "get_optional_user",
    "get_owner_scope",
    "get_supabase_auth",
    "require_admin",
]
