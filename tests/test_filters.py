from dataclasses import replace
from datetime import UTC, datetime

from servertrack.filters import (
    FilterSpec,
    available_tags,
    filter_servers,
    format_game_time,
    latest_version,
    parse_tag_list,
    player_totals,
    sort_servers,
    sort_versions,
)
from servertrack.models import ServerRecord

CACHED_AT = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


def _server(game_id: int, name: str, **overrides) -> ServerRecord:
    players = overrides.pop("players", ())
    base = ServerRecord(
        game_id=game_id,
        name=name,
        description="",
        max_players=0,
        player_count=len(players),
        players=tuple(players),
        game_time_elapsed=0,
        has_password=False,
        tags=(),
        mod_count=0,
        game_version="2.0.28",
        build_version=80000,
        host_address=None,
        headless=False,
        cached_at=CACHED_AT,
    )
    return replace(base, **overrides)


SERVERS = [
    _server(1, "[color=red]Alpha[/color] Base", players=("a", "b"), tags=("pvp", "eu"), headless=True),
    _server(2, "Beta", has_password=True, players=("c",), tags=("modded",), mod_count=40),
    _server(3, "Gamma", description="Chill megabase", game_version="1.1.110", tags=("eu",)),
    _server(4, "Delta", game_version="2.0.27", game_time_elapsed=500, tags=("Vanilla",)),
]


def test_sort_versions_semantic_desc_with_invalid_last() -> None:
    assert sort_versions(["1.1.0", "2.0.1", "1.1.0-rc"]) == ["2.0.1", "1.1.0", "1.1.0-rc"]
    assert sort_versions(["weird", "1.1.0", "2.0.1", "1.1.0"]) == ["2.0.1", "1.1.0", "weird"]
    assert sort_versions([]) == []


def test_latest_version_is_default_filter() -> None:
    assert latest_version(SERVERS) == "2.0.28"
    result = filter_servers(SERVERS, FilterSpec())
    assert result.effective_version == "2.0.28"
    assert [s.game_id for s in result.servers] == [1, 2]


def test_all_versions_bypass_and_prefix_match() -> None:
    assert filter_servers(SERVERS, FilterSpec(version="all")).total == 4
    result = filter_servers(SERVERS, FilterSpec(version="2.0"))
    assert [s.game_id for s in result.servers] == [1, 2, 4]


def test_no_password_excludes_protected_servers() -> None:
    result = filter_servers(SERVERS, FilterSpec(version="all", no_password=True))
    assert result.servers
    assert all(not s.has_password for s in result.servers)


def test_search_matches_name_description_and_tags() -> None:
    spec = FilterSpec(version="all")
    assert [s.game_id for s in filter_servers(SERVERS, replace(spec, search="alpha")).servers] == [1]
    assert [s.game_id for s in filter_servers(SERVERS, replace(spec, search="MEGA")).servers] == [3]
    assert [s.game_id for s in filter_servers(SERVERS, replace(spec, search="vanil")).servers] == [4]


def test_has_players_and_dedicated() -> None:
    spec = FilterSpec(version="all")
    assert [s.game_id for s in filter_servers(SERVERS, replace(spec, has_players=True)).servers] == [1, 2]
    assert [s.game_id for s in filter_servers(SERVERS, replace(spec, dedicated_only=True)).servers] == [1]


def test_tags_are_ored_then_anded() -> None:
    spec = FilterSpec(version="all", tags=["eu", "modded"])
    assert [s.game_id for s in filter_servers(SERVERS, spec).servers] == [1, 2, 3]
    spec = replace(spec, no_password=True)
    assert [s.game_id for s in filter_servers(SERVERS, spec).servers] == [1, 3]


def test_limit_applies_after_filtering() -> None:
    result = filter_servers(SERVERS, FilterSpec(version="all", limit=2))
    assert result.total == 4
    assert [s.game_id for s in result.servers] == [1, 2]

    first = filter_servers(SERVERS, FilterSpec(version="all", limit=1))
    assert [s.game_id for s in first.servers] == [1]
    assert first.players == 3


def test_sort_servers() -> None:
    assert [s.game_id for s in sort_servers(SERVERS, "name", descending=False)] == [1, 2, 4, 3]
    assert [s.game_id for s in sort_servers(SERVERS, "players")] == [1, 2, 3, 4]
    assert sort_servers(SERVERS, "game_time")[0].game_id == 4


def test_available_tags_by_frequency() -> None:
    servers = SERVERS + [_server(5, "Epsilon", tags=("game", "pvp", "eu"))]
    assert available_tags(servers) == ["eu", "pvp", "Vanilla", "modded"]
    assert available_tags(servers, limit=1) == ["eu"]


def test_helpers() -> None:
    assert parse_tag_list(" pvp, ,eu ") == ["pvp", "eu"]
    assert parse_tag_list(None) == []
    assert player_totals(SERVERS) == 3
    assert format_game_time(45) == "0h 45m"
    assert format_game_time(1500) == "1d 1h 0m"
