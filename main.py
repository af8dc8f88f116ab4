"""
GamerGrid backend: application entry point.
"""

from __future__ import annotations

import logging
import pathlib
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.middleware import register_middleware
from api.routes import router as api_router
from auth.jwt import TokenService
from auth.routes import router as auth_router
from auth.service import AccountService
from config.settings import Settings, get_config
from connectors.rawg import RawgClient
from database.session import build_engine, build_session_factory, check_connection, init_models

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        stream=sys.stdout,
    )
    for _noisy in ("httpcore", "httpx", "sqlalchemy.engine", "aiosqlite", "multipart"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application around an explicit ``Settings`` instance.

    Services live on ``app.state``: ``settings``, ``engine``,
    ``session_factory``, ``tokens``, ``accounts`` and ``rawg``.  A missing
    ``JWT_SECRET`` raises ``TokenConfigError`` here, before any request.
    """
    settings = settings or get_config()
    configure_logging(settings.debug)

    app = FastAPI(
        title="GamerGrid API",
        version="1.0.0",
        description="Accounts, communities and game discovery for GamerGrid.",
    )

    tokens = TokenService(settings.jwt_secret, expiry_seconds=settings.jwt_expiry_seconds)
    engine = build_engine(settings)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.tokens = tokens
    app.state.accounts = AccountService(tokens)
    app.state.rawg = RawgClient(
        settings.rawg_api_key,
        base_url=settings.rawg_base_url,
        timeout=settings.rawg_timeout,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)

    # Routes
    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(api_router, prefix="/api")

    upload_dir = pathlib.Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")

    @app.on_event("startup")
    async def on_startup():
        if await check_connection(engine):
            await init_models(engine)
        else:
            logger.error("Database connection failed; continuing to start for health checks.")

        if not app.state.rawg.is_configured():
            logger.warning("RAWG_API_KEY is not set; /api/games will answer 503")

        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        await engine.dispose()

    return app


if __name__ == "__main__":
    _settings = get_config()
    uvicorn.run(
        create_app(_settings),
        host=_settings.host,
        port=_settings.port,
        log_level="debug" if _settings.debug else "info",
    )
