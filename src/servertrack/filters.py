from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Literal

from packaging.version import InvalidVersion, Version

from servertrack.models import ServerRecord

ALL_VERSIONS = "all"
EXCLUDED_TAGS = frozenset({"", "game", "tags"})

SortKey = Literal["name", "players", "game_time"]


@dataclass(slots=True)
class FilterSpec:
    search: str = ""
    # None/"" means the latest version present, "all" disables the check.
    version: str | None = None
    has_players: bool = False
    no_password: bool = False
    dedicated_only: bool = False
    tags: list[str] = field(default_factory=list)
    limit: int | None = None


@dataclass(slots=True)
class FilterResult:
    servers: list[ServerRecord]
    total: int
    effective_version: str
    # Players across every match, before the limit.
    players: int = 0


def _version_key(value: str) -> Version | None:
    try:
        return Version(value)
    except InvalidVersion:
        return None


def sort_versions(versions: Iterable[str]) -> list[str]:
    """Distinct versions, newest first; unparseable ones go last."""
    distinct = list(dict.fromkeys(versions))
    parsed = [(v, _version_key(v)) for v in distinct]
    valid = sorted((p for p in parsed if p[1] is not None), key=lambda p: p[1], reverse=True)
    invalid = [p for p in parsed if p[1] is None]
    return [v for v, _ in valid + invalid]


def latest_version(records: Iterable[ServerRecord]) -> str:
    ordered = sort_versions(r.game_version for r in records)
    return ordered[0] if ordered else ""


def parse_tag_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]


def _matches_search(record: ServerRecord, needle: str) -> bool:
    if needle in record.name.lower() or needle in record.description.lower():
        return True
    return any(needle in tag.lower() for tag in record.tags)


def filter_servers(records: Sequence[ServerRecord], spec: FilterSpec) -> FilterResult:
    if spec.version == ALL_VERSIONS:
        effective_version = ""
    elif spec.version:
        effective_version = spec.version
    else:
        effective_version = latest_version(records)

    needle = spec.search.strip().lower()
    selected_tags = set(spec.tags)

    matched: list[ServerRecord] = []
    for record in records:
        if needle and not _matches_search(record, needle):
            continue
        if effective_version and not record.game_version.startswith(effective_version):
            continue
        if spec.has_players and record.player_count == 0:
            continue
        if spec.no_password and record.has_password:
            continue
        if spec.dedicated_only and not record.headless:
            continue
        if selected_tags and selected_tags.isdisjoint(record.tags):
            continue
        matched.append(record)

    total = len(matched)
    players = player_totals(matched)
    if spec.limit is not None:
        matched = matched[: max(0, spec.limit)]
    return FilterResult(
        servers=matched, total=total, effective_version=effective_version, players=players
    )


def sort_servers(
    records: Iterable[ServerRecord], key: SortKey = "players", descending: bool = True
) -> list[ServerRecord]:
    if key == "name":
        return sorted(records, key=lambda r: r.name.lower(), reverse=descending)
    if key == "players":
        return sorted(records, key=lambda r: r.player_count, reverse=descending)
    if key == "game_time":
        return sorted(records, key=lambda r: r.game_time_elapsed, reverse=descending)
    raise ValueError(f"unknown sort key: {key}")


def available_tags(records: Iterable[ServerRecord], limit: int = 15) -> list[str]:
    counts = Counter(tag for record in records for tag in record.tags)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [tag for tag, _ in ranked if tag not in EXCLUDED_TAGS][:limit]


def player_totals(records: Iterable[ServerRecord]) -> int:
    return sum(r.player_count for r in records)


def format_game_time(minutes: int) -> str:
    days, rest = divmod(max(0, minutes), 60 * 24)
    hours, mins = divmod(rest, 60)
    if days > 0:
        return f"{days}d {hours}h {mins}m"
    return f"{hours}h {mins}m"
