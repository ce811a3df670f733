import logging
from app import mongo

logger = logging.getLogger(__name__)


def initialize_database():
    """Create the indexes used by quiz lookups"""
    try:
        mongo.db.quizzes.create_index('is_active')
        mongo.db.quizzes.create_index('created_by')
        mongo.db.quizzes.create_index([('type', 1), ('allowed_groups', 1)])
        mongo.db.quizzes.create_index([('start_time', 1), ('end_time', 1)])

        logger.info("[OK] Database indexes created")
    except Exception as e:
        logger.warning(f"[WARN] Index creation warning (may already exist): {e}")

    logger.info("[OK] Database initialization complete")
