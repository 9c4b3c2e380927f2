"""
app/db/indexes.py

Purpose: Database index management

- Documents are keyed by _id (already unique)
- Secondary index on kind for maintenance queries
"""

from app.db.mongo import get_kv_collection
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes():
    """
    Creates the kv collection indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        kv = get_kv_collection()

        await kv.create_index("kind", name="kind_idx")
        logger.debug("Created index on kv.kind")

        # Set membership lookups ("is uid in users:set")
        await kv.create_index([("_id", 1), ("members", 1)], name="set_members_idx")
        logger.debug("Created compound index on kv._id + members")

        logger.info("Database indexes created")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise
