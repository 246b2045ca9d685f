"""
MongoDB connection management for the reading tracker.
Handles connection, indexing and health checks for all collections.
"""

from typing import Dict, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure

logger = structlog.get_logger(__name__)

USERS = "users"
BOOKS = "books"
NOTES = "notes"
PROGRESS_HISTORY = "progress_history"


class MongoDBManager:
    """
    Async MongoDB manager.
    Owns the client and exposes the collections used by the repositories.
    """

    def __init__(self, connection_url: str, database_name: str):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB and make sure indexes exist."""
        try:
            self.client = AsyncIOMotorClient(
                self.connection_url,
                serverSelectionTimeoutMS=5000,
                socketTimeoutMS=45000,
            )
            self.database = self.client[self.database_name]

            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self._create_indexes()

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """Create unique and owner-scoped indexes for every collection."""
        try:
            users = self.database[USERS]
            await users.create_index("email", unique=True)
            await users.create_index("username", unique=True)

            books = self.database[BOOKS]
            await books.create_index("user_id")
            await books.create_index([("user_id", 1), ("status", 1)])
            await books.create_index([("user_id", 1), ("title", 1)])

            for name in (NOTES, PROGRESS_HISTORY):
                collection = self.database[name]
                await collection.create_index("user_id")
                await collection.create_index("book_id")
                await collection.create_index([("user_id", 1), ("book_id", 1)])

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        if self.database is None:
            return {"status": "unhealthy", "error": "not connected"}
        try:
            await self.database.command("ping")
            return {"status": "healthy"}
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
