"""
Redis service for the Pollution Report API
Provides the connection pool and a small document-collection layer:
each document is JSON under {collection}:{id}, indexed by creation time
in the sorted set {collection}:index.
"""

import json
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

import redis

from ..core.config import settings
from ..core.exceptions import TransportException
from ..core.logging_config import get_logger

logger = get_logger("redis_service")


class RedisService:
    """Redis service with connection pool and health helpers"""

    def __init__(self):
        self.redis_client: Optional[redis.Redis] = None
        self.connection_pool: Optional[redis.ConnectionPool] = None
        self._setup_connection()

    def get_redis(self) -> Optional[redis.Redis]:
        """Get the singleton Redis client"""
        return self.redis_client

    def _setup_connection(self):
        """Setup Redis connection with connection pool"""
        try:
            if settings.redis_url:
                self.connection_pool = redis.ConnectionPool.from_url(
                    settings.redis_url,
                    decode_responses=True,
                    max_connections=20,
                    socket_connect_timeout=10,
                    socket_timeout=10,
                    retry_on_timeout=True
                )
            elif settings.redis_host:
                self.connection_pool = redis.ConnectionPool(
                    host=settings.redis_host,
                    port=settings.redis_port,
                    username=settings.redis_username or "default",
                    password=settings.redis_password,
                    db=settings.redis_db,
                    decode_responses=True,
                    max_connections=20,
                    socket_connect_timeout=10,
                    socket_timeout=10,
                    retry_on_timeout=True
                )
            else:
                logger.warning("⚠️ Redis not configured - documents will not persist")
                return

            self.redis_client = redis.Redis(connection_pool=self.connection_pool)
            self.redis_client.ping()
            logger.info("✅ Redis connection pool established")

        except Exception as e:
            logger.error(f"❌ Failed to setup Redis connection: {e}")
            self.redis_client = None
            self.connection_pool = None

    def is_connected(self) -> bool:
        """Check if Redis is connected"""
        try:
            if not self.redis_client:
                return False
            self.redis_client.ping()
            return True
        except Exception:
            return False

    def get_health_status(self) -> Dict[str, Any]:
        """Get Redis health status for /health endpoint"""
        try:
            if not self.redis_client:
                return {
                    "status": "not_configured",
                    "connected": False,
                    "error": "Redis not configured"
                }

            info = self.redis_client.info()

            return {
                "status": "healthy",
                "connected": True,
                "redis_version": info.get("redis_version"),
                "used_memory": info.get("used_memory_human"),
                "connected_clients": info.get("connected_clients"),
            }

        except Exception as e:
            return {
                "status": "unhealthy",
                "connected": False,
                "error": str(e)
            }


class RedisCollection:
    """JSON documents of one kind stored in Redis"""

    def __init__(self, name: str, client_provider: Callable[[], Optional[redis.Redis]]):
        self.name = name
        self._client_provider = client_provider

    @property
    def index_key(self) -> str:
        return f"{self.name}:index"

    def key(self, doc_id: str) -> str:
        return f"{self.name}:{doc_id}"

    def _client(self) -> redis.Redis:
        client = self._client_provider()
        if client is None:
            raise TransportException(f"Document store unavailable for {self.name}")
        return client

    def add(self, document: Dict[str, Any], doc_id: Optional[str] = None) -> str:
        """Store a new document and return its id"""
        doc_id = doc_id or uuid.uuid4().hex
        document = {**document, "id": doc_id}
        try:
            client = self._client()
            client.set(self.key(doc_id), json.dumps(document, default=str))
            client.zadd(self.index_key, {doc_id: time.time()})
        except redis.RedisError as e:
            logger.error(f"❌ Failed to store {self.name} {doc_id}: {e}")
            raise TransportException(f"Failed to store {self.name}: {e}") from e
        logger.debug(f"Stored {self.name} {doc_id}")
        return doc_id

    def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            raw = self._client().get(self.key(doc_id))
        except redis.RedisError as e:
            raise TransportException(f"Failed to read {self.name} {doc_id}: {e}") from e
        return json.loads(raw) if raw else None

    def put(self, doc_id: str, document: Dict[str, Any]) -> None:
        """Overwrite an existing document"""
        document = {**document, "id": doc_id}
        try:
            self._client().set(self.key(doc_id), json.dumps(document, default=str))
        except redis.RedisError as e:
            raise TransportException(f"Failed to write {self.name} {doc_id}: {e}") from e

    def update(self, doc_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Merge changes into a document; None if it does not exist"""
        document = self.get(doc_id)
        if document is None:
            return None
        document.update(changes)
        self.put(doc_id, document)
        return document

    def delete(self, doc_id: str) -> bool:
        try:
            client = self._client()
            deleted = client.delete(self.key(doc_id))
            client.zrem(self.index_key, doc_id)
        except redis.RedisError as e:
            raise TransportException(f"Failed to delete {self.name} {doc_id}: {e}") from e
        return bool(deleted)

    def all(self) -> List[Dict[str, Any]]:
        """All documents, newest first"""
        try:
            client = self._client()
            ids = client.zrevrange(self.index_key, 0, -1)
            documents = []
            for doc_id in ids:
                raw = client.get(self.key(doc_id))
                if raw:
                    documents.append(json.loads(raw))
        except redis.RedisError as e:
            raise TransportException(f"Failed to list {self.name}: {e}") from e
        return documents


# Global Redis service instance
redis_service = RedisService()
