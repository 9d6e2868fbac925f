import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from tablebook.context import AppContext
from tablebook.storage.database import DatabaseManager

logger = logging.getLogger(__name__)

_app: AppContext | None = None


def get_app() -> AppContext:
    """Get the current AppContext. Raises if the server lifespan has not started."""
    if _app is None:
        raise RuntimeError("Application not initialized. Server lifespan has not started.")
    return _app


def _reset_app() -> None:
    """Clear the module-level AppContext reference. Used in tests."""
    global _app  # noqa: PLW0603
    _app = None


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict]:
    """Open the local store and build the AppContext for the server lifetime."""
    global _app  # noqa: PLW0603
    from tablebook.config import get_settings

    settings = get_settings()
    db = DatabaseManager(settings.db_path)
    await db.initialize()
    logger.info("Database initialized at %s", settings.db_path)

    _app = AppContext.from_settings(settings, db)
    logger.info("Reservation API: %s", settings.api_base_url)

    try:
        yield {"app": _app}
    finally:
        _app = None
        await db.close()
        logger.info("Database closed")


mcp = FastMCP("tablebook", lifespan=app_lifespan)


@mcp.custom_route("/health", methods=["GET"])
async def health_check(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def setup_logging(log_level: str, data_dir: Path) -> None:
    """Configure logging with file rotation and console output.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        data_dir: Base data directory; logs go to data_dir/logs/server.log.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Exact type check so FileHandler subclasses don't count as console
    if not any(type(h) is logging.StreamHandler for h in root_logger.handlers):
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(formatter)
        root_logger.addHandler(console)

    log_dir = data_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "server.log"

    if not any(isinstance(h, RotatingFileHandler) for h in root_logger.handlers):
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=3,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def initialize() -> FastMCP:
    """Set up directories, logging, auth and tools. Returns the MCP server."""
    from tablebook.config import get_settings

    settings = get_settings()

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    (settings.data_dir / "logs").mkdir(exist_ok=True)

    setup_logging(settings.log_level, settings.data_dir)

    if settings.mcp_auth_token:
        from tablebook.auth import BearerTokenVerifier

        mcp.auth = BearerTokenVerifier(settings.mcp_auth_token)
        logger.info("Bearer token auth enabled")
    else:
        mcp.auth = None

    from tablebook.tools.booking import register_booking_tools
    from tablebook.tools.reservations import register_reservation_tools
    from tablebook.tools.restaurants import register_restaurant_tools

    register_booking_tools(mcp)
    register_reservation_tools(mcp)
    register_restaurant_tools(mcp)

    logger.info("Tablebook MCP server initialized")
    return mcp
