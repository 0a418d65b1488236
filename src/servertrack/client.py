from __future__ import annotations

from datetime import UTC, datetime

import httpx
from loguru import logger
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from servertrack.errors import FetchError
from servertrack.models import GameTime, ModInfo, ServerDetails, ServerRecord


class ApplicationVersion(BaseModel):
    game_version: str
    build_version: int = 0
    build_mode: str = ""
    platform: str = ""


class GameListing(BaseModel):
    game_id: int
    name: str
    description: str = ""
    max_players: int = 0
    players: list[str] = Field(default_factory=list)
    game_time_elapsed: int | str = 0
    has_password: bool = False
    tags: list[str] = Field(default_factory=list)
    mod_count: int = 0
    host_address: str | None = None
    application_version: ApplicationVersion
    has_mods: bool = False
    headless_server: bool = False

    def to_record(self, cached_at: datetime) -> ServerRecord:
        # player_count always follows the roster we received.
        return ServerRecord(
            game_id=self.game_id,
            name=self.name,
            description=self.description,
            max_players=self.max_players,
            player_count=len(self.players),
            players=tuple(self.players),
            game_time_elapsed=GameTime(self.game_time_elapsed).minutes,
            has_password=self.has_password,
            tags=tuple(self.tags),
            mod_count=self.mod_count,
            game_version=self.application_version.game_version,
            build_version=self.application_version.build_version,
            host_address=self.host_address,
            headless=self.headless_server,
            cached_at=cached_at,
        )


class _ModPayload(BaseModel):
    name: str
    version: str = ""


class GameDetailsPayload(BaseModel):
    game_id: int
    players: list[str] = Field(default_factory=list)
    mods: list[_ModPayload] = Field(default_factory=list)


_LISTINGS = TypeAdapter(list[GameListing])


class MatchmakingClient:
    def __init__(
        self,
        base_url: str,
        username: str,
        token: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.token = token
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _get(self, path: str, params: dict[str, str] | None = None) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            async with self._client() as client:
                response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise FetchError(f"Request failed: {exc}") from exc

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise FetchError("Authentication failed")
        if not response.is_success:
            raise FetchError(f"Invalid response: {response.status_code} {response.text[:200]}")
        return response

    async def fetch_server_list(self) -> list[ServerRecord]:
        response = await self._get(
            "/get-games", params={"username": self.username, "token": self.token}
        )
        try:
            listings = _LISTINGS.validate_json(response.content)
        except ValidationError as exc:
            raise FetchError(f"Invalid response: {exc.error_count()} invalid fields") from exc

        cached_at = datetime.now(UTC)
        logger.debug("Fetched {} servers from matchmaking API", len(listings))
        return [listing.to_record(cached_at) for listing in listings]

    async def fetch_server_details(self, game_id: int) -> ServerDetails:
        response = await self._get(f"/get-game-details/{game_id}")
        try:
            payload = GameDetailsPayload.model_validate_json(response.content)
        except ValidationError as exc:
            raise FetchError(f"Invalid response: {exc.error_count()} invalid fields") from exc
        return ServerDetails(
            game_id=payload.game_id,
            players=tuple(payload.players),
            mods=tuple(ModInfo(name=m.name, version=m.version) for m in payload.mods),
        )
