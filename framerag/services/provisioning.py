"""
Collection provisioning with per-name deduplication.

At most one create-and-poll attempt runs per collection name. Concurrent
callers share it; a failed attempt is evicted so the next call starts over.
"""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional

import structlog

from ..config import settings
from ..exceptions import ProvisionError
from .qdrant_service import QdrantService

logger = structlog.get_logger()


class ProvisioningState(str, Enum):
    ABSENT = "absent"
    IN_FLIGHT = "in-flight"
    READY = "ready"
    FAILED = "failed"


class ProvisioningCoordinator:
    """Ensures named collections exist and are ready.

    ``attempts`` maps a collection name to its provisioning task. It is owned
    by the coordinator instance and can be injected for tests.
    """

    def __init__(
        self,
        store: QdrantService,
        dimension: Optional[int] = None,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        attempts: Optional[dict[str, asyncio.Task]] = None,
    ):
        self.store = store
        self.dimension = dimension or settings.EMBEDDING_DIMENSION
        self.poll_interval = (
            settings.PROVISION_POLL_INTERVAL if poll_interval is None else poll_interval
        )
        self.max_attempts = max_attempts or settings.PROVISION_MAX_ATTEMPTS
        self._attempts: dict[str, asyncio.Task] = attempts if attempts is not None else {}
        self._lock = asyncio.Lock()

    def state(self, collection_name: str) -> ProvisioningState:
        attempt = self._attempts.get(collection_name)
        if attempt is None:
            return ProvisioningState.ABSENT
        if not attempt.done():
            return ProvisioningState.IN_FLIGHT
        if attempt.cancelled() or attempt.exception() is not None:
            return ProvisioningState.FAILED
        return ProvisioningState.READY

    async def ensure_ready(self, collection_name: str) -> None:
        """Wait until the collection exists and is ready, provisioning it at most once."""
        async with self._lock:
            attempt = self._attempts.get(collection_name)
            if attempt is not None and attempt.done() and (
                attempt.cancelled() or attempt.exception() is not None
            ):
                # Failed but not evicted yet; never replay it
                attempt = None
            if attempt is None:
                attempt = asyncio.create_task(self._provision(collection_name))
                self._attempts[collection_name] = attempt
            else:
                logger.debug("Joining provisioning attempt", collection=collection_name)

        # Shield so a cancelled caller does not cancel the shared attempt
        await asyncio.shield(attempt)

    async def forget(self, collection_name: str) -> None:
        """Drop any cached attempt for the name (e.g. after the collection is deleted)."""
        async with self._lock:
            self._attempts.pop(collection_name, None)

    async def _provision(self, collection_name: str) -> None:
        try:
            await self._create_if_missing(collection_name)
            await self._wait_until_ready(collection_name)
        except BaseException as e:
            current = asyncio.current_task()
            async with self._lock:
                if self._attempts.get(collection_name) is current:
                    del self._attempts[collection_name]
            logger.error(
                "Provisioning failed",
                collection=collection_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
        logger.info("Collection ready", collection=collection_name)

    async def _create_if_missing(self, collection_name: str) -> None:
        existing = await self.store.list_collections()
        if collection_name in existing:
            return
        logger.info(
            "Creating collection",
            collection=collection_name,
            dimension=self.dimension,
        )
        await self.store.create_collection(collection_name, self.dimension)

    async def _wait_until_ready(self, collection_name: str) -> None:
        for attempt in range(self.max_attempts):
            try:
                if await self.store.describe_status(collection_name):
                    return
            except Exception as e:
                # The collection may not be visible yet
                logger.debug(
                    "Readiness poll failed",
                    collection=collection_name,
                    attempt=attempt + 1,
                    error=str(e),
                )
            await asyncio.sleep(self.poll_interval)
        raise ProvisionError(
            f'Timed out waiting for collection "{collection_name}" to become ready.',
            details={"collection": collection_name, "attempts": self.max_attempts},
        )
