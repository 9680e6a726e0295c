from auth_starter.config import get_settings
from auth_starter.utils.logger import get_logger
from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

settings = get_settings()
logger = get_logger("db")

DEFAULT_DB_NAME = "auth_starter"

_mongo_client: AsyncIOMotorClient | None = None


async def init_db() -> None:
    """Connect to MongoDB and register the Beanie documents (creates the unique indexes)."""
    global _mongo_client
    _mongo_client = AsyncIOMotorClient(settings.MONGODB_URI)
    # Database name comes from the URI path when present
    database = _mongo_client.get_default_database(default=DEFAULT_DB_NAME)
    from auth_starter.models import MarketingPreference, User

    await init_beanie(database=database, document_models=[User, MarketingPreference])
    logger.info("Connected to MongoDB database %s", database.name)


async def close_db() -> None:
    global _mongo_client
    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None


async def ping_db() -> bool:
    """Check MongoDB connectivity."""
    if not _mongo_client:
        return False
    try:
        await _mongo_client.admin.command("ping")
        return True
    except Exception:
        logger.warning("MongoDB ping failed", exc_info=True)
        return False
