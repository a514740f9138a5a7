"""Business logic for microsites, carts, checkout and fulfillment."""

from api.services.database import close_db, get_db, session_scope

__all__ = [
    "close_db",
    "get_db",
    "session_scope",
]
