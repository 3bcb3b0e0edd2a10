from edupresence.config import Settings
from edupresence.database.base import AttendanceStore
from edupresence.utils.logger import logger


def build_store(settings: Settings) -> AttendanceStore:
    """Supabase when credentials are configured, otherwise SQLAlchemy on DATABASE_URL."""
    if settings.use_supabase:
        from edupresence.database.supabase_store import SupabaseStore
        logger.info("Using Supabase data store at %s", settings.supabase_url)
        return SupabaseStore(settings.supabase_url, settings.supabase_key)

    from edupresence.database.sql_store import SqlStore
    logger.info("Using SQL data store (%s)", settings.database_url.split("://", 1)[0])
    return SqlStore(settings.database_url)
