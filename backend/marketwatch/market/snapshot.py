"""Bootstrap snapshot loading with bounded retries."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum

from pydantic import ValidationError

from .errors import SnapshotError
from .interface import SnapshotFetcher
from .models import MarketEntity, SnapshotResponse

logger = logging.getLogger(__name__)

SUCCESS_STATUS = 200


class BootstrapStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class BootstrapResult:
    """Outcome of a snapshot load.

    Lets callers tell "no pairs exist" (SUCCEEDED, no entities) apart from
    "bootstrap never completed" (FAILED, with a reason).
    """

    status: BootstrapStatus
    entities: list[MarketEntity] = field(default_factory=list)
    attempts: int = 0
    reason: str | None = None
    completed_at: float = field(default_factory=time.time)  # Unix seconds

    @property
    def ok(self) -> bool:
        return self.status is BootstrapStatus.SUCCEEDED

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "pairs": len(self.entities),
            "attempts": self.attempts,
            "reason": self.reason,
            "completed_at": self.completed_at,
        }


class SnapshotLoader:
    """Fetches the initial entity list, retrying transient failures.

    Every failure mode (timeout, transport error, HTTP error, non-200 body
    status, malformed envelope) counts as one failed attempt. After
    ``max_attempts`` the loader gives up and returns a FAILED result; it
    never raises for fetch failures. A malformed record inside an otherwise
    good snapshot is skipped; the rest still load.
    """

    def __init__(
        self,
        fetcher: SnapshotFetcher,
        timeout: float = 10.0,
        max_attempts: int = 3,
        retry_delay: float = 5.0,
    ) -> None:
        self._fetcher = fetcher
        self._timeout = timeout
        self._max_attempts = max(1, max_attempts)
        self._retry_delay = retry_delay

    async def load(self) -> BootstrapResult:
        reason = "no attempts made"
        for attempt in range(1, self._max_attempts + 1):
            try:
                entities = await self._attempt()
            except asyncio.TimeoutError:
                reason = f"timed out after {self._timeout:.1f}s"
            except Exception as e:
                reason = str(e) or type(e).__name__
            else:
                logger.info("Market data initialized: %d pairs (attempt %d)", len(entities), attempt)
                return BootstrapResult(
                    status=BootstrapStatus.SUCCEEDED,
                    entities=entities,
                    attempts=attempt,
                )

            logger.warning(
                "Attempt %d/%d: failed to load market snapshot: %s",
                attempt,
                self._max_attempts,
                reason,
            )
            if attempt < self._max_attempts:
                logger.info("Retrying snapshot in %.1fs", self._retry_delay)
                await asyncio.sleep(self._retry_delay)

        logger.error("Max retries reached; market snapshot unavailable: %s", reason)
        return BootstrapResult(
            status=BootstrapStatus.FAILED,
            attempts=self._max_attempts,
            reason=reason,
        )

    async def _attempt(self) -> list[MarketEntity]:
        """One fetch + validation. Raises on anything but a usable snapshot."""
        body = await asyncio.wait_for(self._fetcher.fetch(), timeout=self._timeout)
        response = SnapshotResponse.model_validate(body)
        if response.status_code != SUCCESS_STATUS:
            raise SnapshotError(
                f"status_code {response.status_code}: {response.message or 'no message'}"
            )
        entities: list[MarketEntity] = []
        for position, record in enumerate(response.data):
            try:
                entity = MarketEntity.model_validate(record)
            except ValidationError as e:
                pair = record.get("pair_name", "?") if isinstance(record, dict) else "?"
                logger.warning(
                    "Skipping malformed snapshot record #%d (%s): %s",
                    position,
                    pair,
                    e.errors()[0]["msg"],
                )
                continue
            # is_favorite is user-local; the source's value is ignored.
            entities.append(entity.model_copy(update={"is_favorite": False}))
        return entities
