from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Protocol, TypeVar

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from servertrack.errors import TrackerError, sanitize_error
from servertrack.models import HistorySample, ServerRecord, Snapshot
from servertrack.repository import ServerRepository
from servertrack.state import RefreshState

REFRESH_JOB_ID = "servertrack_refresh"

T = TypeVar("T")


class ServerSource(Protocol):
    async def fetch_server_list(self) -> list[ServerRecord]: ...


class RefreshPhase(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"
    RECORDING = "recording"
    CACHING = "caching"
    CLEANING_UP = "cleaning_up"


class RefreshCoordinator:
    def __init__(
        self,
        source: ServerSource,
        repository: ServerRepository,
        state: RefreshState,
        interval_seconds: int = 60,
        retention_hours: int = 24,
    ) -> None:
        self.source = source
        self.repo = repository
        self.state = state
        self.interval_seconds = interval_seconds
        self.retention = timedelta(hours=retention_hours)
        self.phase = RefreshPhase.IDLE
        self._cycle_lock = asyncio.Lock()
        self._stopping = False
        self._scheduler: AsyncIOScheduler | None = None

    async def warm_up(self) -> Snapshot:
        """Publish whatever the store last committed, before the first fetch."""
        try:
            servers = await self.repo.get_all()
            cached_at = await self.repo.get_last_cache_time()
        except Exception:
            logger.exception("Loading cached servers failed, starting with an empty snapshot")
            return self.state.snapshot
        if not servers:
            return self.state.snapshot
        logger.info("Loaded {} cached servers from {}", len(servers), cached_at)
        return self.state.publish(servers, cached_at or datetime.now(UTC))

    def _fail(self, errors: list[str], message: str, exc: BaseException) -> None:
        text = sanitize_error(f"{message}: {exc}")
        if isinstance(exc, TrackerError):
            logger.warning(text)
        else:
            logger.opt(exception=exc).error(text)
        errors.append(text)

    async def _step(
        self, phase: RefreshPhase, errors: list[str], message: str, step: Awaitable[T]
    ) -> T | None:
        self.phase = phase
        try:
            return await step
        except Exception as exc:
            self._fail(errors, message, exc)
            return None

    async def run_cycle(self, now: datetime | None = None) -> bool:
        """Run one fetch/record/cache/clean pass. Returns True when nothing failed."""
        if self._stopping:
            logger.debug("Refresh skipped, coordinator is stopping")
            return False

        async with self._cycle_lock:
            errors: list[str] = []
            if now is None:
                now = datetime.now(UTC)
            try:
                servers = await self._step(
                    RefreshPhase.FETCHING,
                    errors,
                    "Failed to fetch servers",
                    self.source.fetch_server_list(),
                )
                if servers is not None:
                    samples = [
                        HistorySample(s.game_id, s.player_count, recorded_at=now) for s in servers
                    ]
                    await self._step(
                        RefreshPhase.RECORDING,
                        errors,
                        "Failed to record history",
                        self.repo.append_history(samples),
                    )
                    written = await self._step(
                        RefreshPhase.CACHING,
                        errors,
                        "Failed to cache servers",
                        self.repo.replace_all(servers),
                    )
                    if written is not None:
                        snapshot = self.state.publish(servers, now)
                        logger.info(
                            "Cached {} servers (generation {})", written, snapshot.generation
                        )

                purged = await self._step(
                    RefreshPhase.CLEANING_UP,
                    errors,
                    "Failed to clean up history",
                    self.repo.purge_history_older_than(now - self.retention),
                )
                if purged:
                    logger.debug("Purged {} history samples", purged)
            finally:
                self.phase = RefreshPhase.IDLE

            self.state.set_error("; ".join(errors) if errors else None)
            return not errors

    def start(self, scheduler: AsyncIOScheduler) -> None:
        self._stopping = False
        self._scheduler = scheduler
        scheduler.add_job(
            self.run_cycle,
            "interval",
            seconds=self.interval_seconds,
            id=REFRESH_JOB_ID,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(UTC),
            replace_existing=True,
        )
        logger.info("Refresh scheduled every {}s", self.interval_seconds)

    async def stop(self) -> None:
        """Stop scheduling new cycles and wait for the running one to finish."""
        self._stopping = True
        if self._scheduler is not None:
            try:
                self._scheduler.remove_job(REFRESH_JOB_ID)
            except JobLookupError:
                pass
            self._scheduler = None
        async with self._cycle_lock:
            logger.info("Refresh coordinator stopped")
