"""Backend implementations for daybook."""

from daybook.backends.base import BaseBackend, ChangeEvent, Subscription
from daybook.config import Settings, db_path


def get_backend(settings: Settings) -> BaseBackend:
    """Get the appropriate backend based on settings.

    Args:
        settings: Loaded settings.

    Returns:
        Backend instance.
    """
    if settings.backend.mode == "supabase":
        from daybook.backends.supabase_backend import SupabaseBackend

        return SupabaseBackend(
            url=settings.supabase.url,
            anon_key=settings.supabase.anon_key,
            poll_interval=settings.journal.poll_interval,
            redirect_url=settings.journal.share_base_url,
        )

    from daybook.backends.local import LocalBackend
    from daybook.db.store import DataStore

    return LocalBackend(DataStore(db_path()))


__all__ = [
    "BaseBackend",
    "ChangeEvent",
    "Subscription",
    "get_backend",
]
