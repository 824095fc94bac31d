"""Migration script: create the Message collection indexes.

This script creates:
1. {senderId, receiverId} for conversation history
2. {receiverId, read} for unread counts and read receipts
3. {createdAt: -1} for newest-first conversation listing

Usage:
    python scripts/add_indexes.py

Ensure MONGO_URI and MONGO_DB_NAME environment variables are set.
"""
import logging
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pymongo.errors import PyMongoError

from jobnest_server.messaging.store import MessageStore
from jobnest_server.repository.mongo_helper import MongoRepositorySingleton

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def main():
    logger.info('=' * 50)
    logger.info('Starting index migration')
    logger.info('=' * 50)

    store = MessageStore.from_db(MongoRepositorySingleton.get_db())
    try:
        store.ensure_indexes()
    except PyMongoError as e:
        logger.error(f'Index migration failed: {e}')
        return 1

    for name, spec in store.collection.index_information().items():
        logger.info(f"  {name}: {spec.get('key')}")

    logger.info('=' * 50)
    logger.info('Index migration complete')
    logger.info('=' * 50)
    return 0


if __name__ == '__main__':
    sys.exit(main())
