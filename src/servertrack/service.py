from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

from loguru import logger

from servertrack.aggregator import aggregate, aggregate_chunks, summarize
from servertrack.client import MatchmakingClient
from servertrack.config import Settings
from servertrack.errors import FetchError
from servertrack.filters import (
    FilterSpec,
    SortKey,
    available_tags,
    filter_servers,
    player_totals,
    sort_servers,
    sort_versions,
)
from servertrack.markup import strip_markup
from servertrack.models import AggregatedBucket, HistorySummary, ServerDetails, ServerRecord
from servertrack.plotter import render_activity_chart
from servertrack.repository import ServerRepository
from servertrack.state import RefreshState

AggregationMode = Literal["hourly", "chunks"]


@dataclass(slots=True)
class ServerListing:
    servers: list[ServerRecord]
    total_matches: int
    total_servers: int
    effective_version: str
    versions: list[str]
    tags: list[str]
    matched_players: int
    total_players: int
    refreshed_at: datetime | None
    last_error: str | None


@dataclass(slots=True)
class ActivityReport:
    game_id: int
    buckets: list[AggregatedBucket]
    summary: HistorySummary | None
    sample_count: int


class TrackerService:
    """Read side used by whatever renders pages or API responses."""

    def __init__(
        self,
        state: RefreshState,
        repository: ServerRepository,
        client: MatchmakingClient | None,
        history_window_hours: int,
        bucket_count: int,
        chart_dir: Path,
        font_path: str | None,
    ) -> None:
        self.state = state
        self.repo = repository
        self.client = client
        self.history_window_hours = history_window_hours
        self.bucket_count = bucket_count
        self.chart_dir = chart_dir
        self.font_path = font_path

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        state: RefreshState,
        repository: ServerRepository,
        client: MatchmakingClient | None,
    ) -> TrackerService:
        return cls(
            state=state,
            repository=repository,
            client=client,
            history_window_hours=settings.history_window_hours,
            bucket_count=settings.chart_bucket_count,
            chart_dir=settings.chart_dir,
            font_path=settings.font_path,
        )

    def list_servers(
        self,
        spec: FilterSpec,
        sort_key: SortKey | None = None,
        descending: bool = True,
    ) -> ServerListing:
        snapshot = self.state.snapshot
        result = filter_servers(snapshot.servers, spec)
        servers = result.servers
        if sort_key is not None:
            servers = sort_servers(servers, sort_key, descending)

        return ServerListing(
            servers=servers,
            total_matches=result.total,
            total_servers=len(snapshot.servers),
            effective_version=result.effective_version,
            versions=sort_versions(s.game_version for s in snapshot.servers),
            tags=available_tags(snapshot.servers),
            matched_players=result.players,
            total_players=player_totals(snapshot.servers),
            refreshed_at=snapshot.refreshed_at,
            last_error=self.state.last_error,
        )

    def get_server(self, game_id: int) -> ServerRecord | None:
        return self.state.snapshot.get(game_id)

    async def get_activity(
        self,
        game_id: int,
        mode: AggregationMode = "hourly",
        now: datetime | None = None,
    ) -> ActivityReport:
        samples = await self.repo.get_history(game_id, self.history_window_hours)
        if mode == "hourly":
            buckets = aggregate(samples, self.bucket_count, now=now)
        elif mode == "chunks":
            buckets = aggregate_chunks(samples, self.bucket_count)
        else:
            raise ValueError(f"unknown aggregation mode: {mode}")
        return ActivityReport(
            game_id=game_id,
            buckets=buckets,
            summary=summarize(samples),
            sample_count=len(samples),
        )

    async def render_activity(self, game_id: int) -> Path | None:
        server = self.get_server(game_id)
        if server is None:
            return None
        now = datetime.now(UTC)
        report = await self.get_activity(game_id, now=now)
        stamp = now.strftime("%Y%m%d_%H%M%S")
        return render_activity_chart(
            output_path=self.chart_dir / str(game_id) / f"activity_{stamp}.png",
            buckets=report.buckets,
            summary=report.summary,
            server_name=strip_markup(server.name),
            generated_at=now,
            font_path=self.font_path,
        )

    async def fetch_details(self, game_id: int) -> ServerDetails | None:
        if self.client is None:
            return None
        try:
            return await self.client.fetch_server_details(game_id)
        except FetchError as exc:
            logger.warning("Server {} details unavailable: {}", game_id, exc)
            return None
