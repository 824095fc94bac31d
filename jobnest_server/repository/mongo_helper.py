import logging

from pymongo import MongoClient

from config import config

logger = logging.getLogger(__name__)


class MongoRepositorySingleton:
    _client = None
    _db_instance = None

    @classmethod
    def get_client(cls) -> MongoClient:
        if cls._client is None:
            timeout = config.MONGO_TIMEOUT_MS
            cls._client = MongoClient(
                config.MONGO_URI,
                serverSelectionTimeoutMS=timeout,
                connectTimeoutMS=timeout,
                socketTimeoutMS=timeout,
            )
        return cls._client

    @classmethod
    def get_db(cls):
        """Singleton utility to get the MongoDB database object.

        Uses MONGO_URI and MONGO_DB_NAME from config. For local development
        these default to mongodb://localhost:27017 and 'jobnest'. In
        production you should always set MONGO_URI securely via environment.
        """
        if cls._db_instance is not None:
            return cls._db_instance
        db_name = config.MONGO_DB_NAME
        logger.info(f"[MongoRepositorySingleton] Connecting to MongoDB DB: {db_name}")
        cls._db_instance = cls.get_client()[db_name]
        return cls._db_instance

    @classmethod
    def reset(cls):
        """Drop the cached client (tests, forked workers)."""
        if cls._client is not None:
            cls._client.close()
        cls._client = None
        cls._db_instance = None
