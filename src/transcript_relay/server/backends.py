"""Storage backends for uploaded transcripts.

Exactly one backend is active per deployment. Both take an enriched
document and persist it as a single write:

- TypesenseBackend always creates a new document, so repeated uploads
  of a session produce separate records.
- BlobBackend writes to a key derived from the session id, so a repeated
  upload of a session overwrites the earlier object.
"""

import json
import uuid
from abc import ABC, abstractmethod
from typing import Any

import typesense
from azure.core.exceptions import ResourceExistsError
from azure.storage.blob import BlobServiceClient, ContainerClient, ContentSettings
from typesense.exceptions import ObjectNotFound

from transcript_relay.config import BlobConfig, Config, TypesenseConfig
from transcript_relay.logging import get_logger
from transcript_relay.models import is_valid_session_id
from transcript_relay.server.cache import ConfigurationError, ConnectionCache

logger = get_logger("server")

TRANSCRIPTS_SCHEMA_FIELDS: list[dict[str, Any]] = [
    {"name": "session_id", "type": "string", "facet": True},
    {"name": "uploaded_at", "type": "string", "sort": True},
    {"name": "client_ip", "type": "string", "optional": True},
    {"name": "hook_event", "type": "string", "facet": True, "optional": True},
    {"name": "tool_name", "type": "string", "facet": True, "optional": True},
    {"name": "reason", "type": "string", "facet": True, "optional": True},
]


def transcripts_schema(collection: str) -> dict[str, Any]:
    """Collection schema for stored uploads.

    Only the listed fields are indexed; the transcript and tool input are
    stored with the document but left unindexed.
    """
    return {"name": collection, "fields": TRANSCRIPTS_SCHEMA_FIELDS}


class StorageBackend(ABC):
    """Persists one enriched upload per call."""

    name: str

    @abstractmethod
    def insert(self, document: dict[str, Any], request_id: str = "") -> dict[str, Any]:
        """Persist a document.

        Returns:
            Identifier fields to include in the success response
        """

    @property
    @abstractmethod
    def cache(self) -> ConnectionCache:
        """The connection cache backing this backend."""


class TypesenseBackend(StorageBackend):
    """Document-store backend: one new Typesense document per upload."""

    name = "typesense"

    def __init__(self, config: TypesenseConfig) -> None:
        self._config = config
        self._cache: ConnectionCache[typesense.Client] = ConnectionCache(self._connect, "Typesense")

    @property
    def cache(self) -> ConnectionCache:
        return self._cache

    def _connect(self) -> typesense.Client:
        config = self._config
        if not config.host or not config.api_key:
            raise ConfigurationError(
                "Missing required Typesense settings: TYPESENSE_HOST, TYPESENSE_API_KEY"
            )

        client = typesense.Client({
            "nodes": [{
                "host": config.host,
                "port": str(config.port),
                "protocol": config.protocol,
            }],
            "api_key": config.api_key,
            "connection_timeout_seconds": config.connection_timeout_seconds,
        })

        try:
            client.collections[config.collection].retrieve()
            logger.debug("Collection already exists: collection=%s", config.collection)
        except ObjectNotFound:
            client.collections.create(transcripts_schema(config.collection))
            logger.info("Created collection: collection=%s", config.collection)

        return client

    def insert(self, document: dict[str, Any], request_id: str = "") -> dict[str, Any]:
        client = self._cache.get(request_id)
        doc = dict(document)
        doc["id"] = uuid.uuid4().hex
        result = client.collections[self._config.collection].documents.create(doc)
        doc_id = result.get("id", doc["id"])
        logger.info("[%s] Inserted document: collection=%s id=%s", request_id, self._config.collection, doc_id)
        return {"id": doc_id}


class BlobBackend(StorageBackend):
    """Blob-store backend: one Azure blob per session, overwritten on re-upload."""

    name = "blob"

    def __init__(self, config: BlobConfig) -> None:
        self._config = config
        self._cache: ConnectionCache[ContainerClient] = ConnectionCache(self._connect, "Blob storage")

    @property
    def cache(self) -> ConnectionCache:
        return self._cache

    def _connect(self) -> ContainerClient:
        config = self._config
        if not config.connection_string or not config.container:
            raise ConfigurationError(
                "Missing required blob storage settings: AZURE_STORAGE_CONNECTION_STRING, TRANSCRIPT_RELAY_CONTAINER"
            )

        service = BlobServiceClient.from_connection_string(
            config.connection_string,
            connection_timeout=config.connection_timeout_seconds,
        )
        container = service.get_container_client(config.container)
        if not container.exists():
            try:
                container.create_container()
                logger.info("Created container: container=%s", config.container)
            except ResourceExistsError:
                pass
        return container

    def blob_key(self, session_id: str) -> str:
        """Object key for a session.

        Raises:
            ValueError: If session_id could escape the key prefix
        """
        if not is_valid_session_id(session_id):
            raise ValueError(f"Invalid session_id for blob key: {session_id!r}")
        return f"{self._config.key_prefix}/{session_id}.json"

    def insert(self, document: dict[str, Any], request_id: str = "") -> dict[str, Any]:
        container = self._cache.get(request_id)
        key = self.blob_key(document["session_id"])
        blob = container.get_blob_client(key)
        blob.upload_blob(
            json.dumps(document, indent=2),
            overwrite=True,
            content_settings=ContentSettings(content_type="application/json"),
        )
        location = blob.url
        logger.info("[%s] Uploaded to: %s", request_id, location)
        return {"key": key, "location": location}


def create_backend(config: Config) -> StorageBackend:
    """Select the storage backend named by server.backend.

    Raises:
        ConfigurationError: If the backend name is unknown
    """
    backend = config.server.backend
    if backend == TypesenseBackend.name:
        return TypesenseBackend(config.typesense)
    if backend == BlobBackend.name:
        return BlobBackend(config.blob)
    raise ConfigurationError(f"Unknown storage backend: {backend}")
