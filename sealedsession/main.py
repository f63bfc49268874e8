#!/usr/bin/env python3
"""
Sealed Session - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Runs the API server

All session logic is in the modules, following black box principles.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from sealedsession.config.provider import ConfigProvider, EnvConfigProvider
from sealedsession.errors import SerializationFailure, StoreUnavailable
from sealedsession.logging_config import configure_logging, get_logging_config, quiet_paths
from sealedsession.modules.api import LoginRequest, SessionResponse
from sealedsession.modules.middleware import create_session_middleware, get_session
from sealedsession.modules.session import Session, SessionManager
from sealedsession.modules.storage import RedisStore, SessionStore

logger = logging.getLogger(__name__)


def create_app(
    config_provider: Optional[ConfigProvider] = None,
    store: Optional[SessionStore] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config_provider: Configuration source (default: environment)
        store: Session store; a RedisStore is built from config if omitted
    """
    config_provider = config_provider or EnvConfigProvider()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application lifecycle - initialize and cleanup resources.
        """
        logger.info("Starting session service...")
        redis_config = config_provider.get_redis_config()
        session_config = config_provider.get_session_config()
        api_config = config_provider.get_api_config()

        owned_store = None
        session_store = store
        if session_store is None:
            owned_store = RedisStore(
                redis_config.prefix,
                redis_config.to_client_config(),
                reconnect_timeout=redis_config.connect_timeout,
            )
            owned_store.start_monitor(redis_config.monitor_interval)
            session_store = owned_store

        manager = SessionManager(
            session_store,
            session_config.secret,
            name=session_config.cookie_name,
            resave=session_config.resave,
            save_uninitialized=session_config.save_uninitialized,
            cookie=session_config.cookie_defaults(),
            reuse_stale_id=session_config.reuse_stale_id,
        )
        app.state.store = session_store
        app.state.session_manager = manager
        app.state.session_middleware = create_session_middleware(manager, api_config.skip_paths)
        logger.info("Session service started successfully")

        yield

        logger.info("Shutting down session service...")
        if owned_store is not None:
            await owned_store.close()
        logger.info("Session service shutdown complete")

    app = FastAPI(
        title="Sealed Session API",
        description="Encrypted-cookie sessions backed by Redis",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def sessions(request: Request, call_next):
        middleware = getattr(request.app.state, "session_middleware", None)
        if middleware is None:
            return JSONResponse(status_code=503, content={"error": "Service not initialized"})
        return await middleware(request, call_next)

    @app.get("/health")
    async def health(request: Request):
        """
        Health check endpoint.

        Returns:
            200 with the store status, 503 if the store is unreachable
        """
        session_store = getattr(request.app.state, "store", None)
        if session_store is None:
            return JSONResponse(status_code=503, content={"status": "starting"})
        try:
            if hasattr(session_store, "ping"):
                await session_store.ping()
        except StoreUnavailable as e:
            logger.error(f"Health check failed: {e}")
            return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})
        return {"status": "healthy", "store": type(session_store).__name__}

    @app.get("/session", response_model=SessionResponse)
    async def read_session(session: Session = Depends(get_session)):
        """Current session. Never writes."""
        user = session.get("user")
        return SessionResponse(authenticated=user is not None, user=user, cookie=session.cookie.to_dict())

    @app.post("/login", response_model=SessionResponse)
    async def login(body: LoginRequest, session: Session = Depends(get_session)):
        """Attach a user to the session (one store write)."""
        session.user = body.to_user()
        return SessionResponse(authenticated=True, user=session.user, cookie=session.cookie.to_dict())

    @app.patch("/session/cookie", response_model=SessionResponse)
    async def update_cookie(
        changes: Dict[str, Any] = Body(...),
        session: Session = Depends(get_session),
    ):
        """
        Bulk update of cookie attributes.

        Keys are applied in the order sent; of expires/maxAge the later wins.
        """
        try:
            session.cookie = changes
        except (AttributeError, TypeError, ValueError) as e:
            raise HTTPException(400, f"Invalid cookie attributes: {e}")
        user = session.get("user")
        return SessionResponse(authenticated=user is not None, user=user, cookie=session.cookie.to_dict())

    @app.post("/logout")
    async def logout(request: Request, session: Session = Depends(get_session)):
        """Destroy the session record and clear the cookie."""
        await request.app.state.session_manager.destroy(session)
        return {"status": "logged_out"}

    @app.exception_handler(StoreUnavailable)
    async def store_error_handler(request, exc):
        """Handle session store outages."""
        logger.error(f"Session store error: {exc}")
        return JSONResponse(status_code=503, content={"error": "Session store unavailable"})

    @app.exception_handler(SerializationFailure)
    async def serialization_error_handler(request, exc):
        """Session state that cannot be persisted fails the request."""
        logger.error(f"Session serialization error: {exc}")
        return JSONResponse(status_code=500, content={"error": "Session could not be saved"})

    return app


app = create_app()


if __name__ == "__main__":
    api_config = EnvConfigProvider().get_api_config()
    quiet = quiet_paths(api_config.skip_paths)
    configure_logging(api_config.log_level, quiet)
    uvicorn.run(
        "sealedsession.main:app",
        host=api_config.host,
        port=api_config.port,
        log_level=api_config.log_level.lower(),
        reload=api_config.debug,
        log_config=get_logging_config(api_config.log_level, quiet),
    )
