from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True, frozen=True)
class GameTime:
    """Elapsed game time as reported upstream.

    Newer API versions send a number of minutes, older ones send the same
    value as a string. ``minutes`` is the only way the rest of the code reads it.
    """

    raw: int | str

    @property
    def minutes(self) -> int:
        if isinstance(self.raw, int):
            return max(0, self.raw)
        text = self.raw.strip()
        if text.isdecimal():
            return int(text)
        return 0


@dataclass(slots=True, frozen=True)
class ServerRecord:
    game_id: int
    name: str
    description: str
    max_players: int
    player_count: int
    players: tuple[str, ...]
    game_time_elapsed: int
    has_password: bool
    tags: tuple[str, ...]
    mod_count: int
    game_version: str
    build_version: int
    host_address: str | None
    headless: bool
    cached_at: datetime


@dataclass(slots=True, frozen=True)
class HistorySample:
    game_id: int
    player_count: int
    recorded_at: datetime


@dataclass(slots=True, frozen=True)
class AggregatedBucket:
    bucket_index: int
    average_player_count: int


@dataclass(slots=True, frozen=True)
class HistorySummary:
    minimum: int
    average: int
    maximum: int


@dataclass(slots=True, frozen=True)
class ModInfo:
    name: str
    version: str


@dataclass(slots=True, frozen=True)
class ServerDetails:
    game_id: int
    players: tuple[str, ...]
    mods: tuple[ModInfo, ...]


@dataclass(slots=True, frozen=True)
class Snapshot:
    servers: tuple[ServerRecord, ...] = ()
    generation: int = 0
    refreshed_at: datetime | None = None
    by_id: dict[int, ServerRecord] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def build(
        cls,
        servers: list[ServerRecord] | tuple[ServerRecord, ...],
        generation: int,
        refreshed_at: datetime | None,
    ) -> Snapshot:
        ordered = tuple(sorted(servers, key=lambda s: s.player_count, reverse=True))
        return cls(
            servers=ordered,
            generation=generation,
            refreshed_at=refreshed_at,
            by_id={s.game_id: s for s in ordered},
        )

    def get(self, game_id: int) -> ServerRecord | None:
        return self.by_id.get(game_id)
