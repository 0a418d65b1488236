import asyncio
import signal
from datetime import UTC

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from servertrack.client import MatchmakingClient
from servertrack.config import settings
from servertrack.coordinator import RefreshCoordinator
from servertrack.log import setup_logging
from servertrack.filters import FilterSpec
from servertrack.repository import ServerRepository
from servertrack.service import TrackerService
from servertrack.state import RefreshState


async def main() -> None:
    setup_logging(settings.log_level, settings.log_dir)
    if not settings.api_username or not settings.api_token:
        logger.warning("SERVERTRACK_API_USERNAME/SERVERTRACK_API_TOKEN not set, API calls will fail")

    repo = ServerRepository(settings.db_path, samples_per_hour=settings.history_samples_per_hour)
    await repo.init()
    logger.info("servertrack repository initialized at {}", settings.db_path)

    client = MatchmakingClient(
        settings.api_base_url,
        settings.api_username,
        settings.api_token,
        timeout=settings.request_timeout_seconds,
    )
    state = RefreshState()
    coordinator = RefreshCoordinator(
        client,
        repo,
        state,
        interval_seconds=settings.refresh_interval_seconds,
        retention_hours=settings.history_retention_hours,
    )
    await coordinator.warm_up()
    service = TrackerService.from_settings(settings, state, repo, client)
    listing = service.list_servers(FilterSpec(version="all"))
    logger.info(
        "Serving {} cached servers, {} players online", listing.total_servers, listing.total_players
    )

    scheduler = AsyncIOScheduler(timezone=UTC)
    coordinator.start(scheduler)
    scheduler.start()

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await stop.wait()
    logger.info("Shutting down, waiting for the running refresh to finish")
    await coordinator.stop()
    scheduler.shutdown(wait=False)


if __name__ == "__main__":
    asyncio.run(main())
