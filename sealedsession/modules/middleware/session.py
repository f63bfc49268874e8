"""
Session Middleware

Loads the session before the handler runs and commits it afterwards.
"""

import logging
from typing import Dict, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from ...errors import StoreUnavailable
from ..session import Session, SessionManager

logger = logging.getLogger(__name__)


class SessionMiddleware:
    """
    HTTP middleware exposing the session as `request.state.session`.

    Register with:
        @app.middleware("http")
        async def sessions(request, call_next):
            return await session_middleware(request, call_next)
    """

    def __init__(
        self,
        manager: SessionManager,
        skip_paths: Optional[Dict[str, list]] = None,
    ):
        """
        Initialize session middleware.

        Args:
            manager: SessionManager resolving and persisting sessions
            skip_paths: Dict of {path: [methods]} served without a session
        """
        self.manager = manager
        self.skip_paths = skip_paths or {}

    def should_skip(self, request: Request) -> bool:
        """Check if session handling should be skipped for this request."""
        path = str(request.url.path)
        method = request.method.upper()

        if path in self.skip_paths:
            allowed_methods = self.skip_paths[path]
            if "*" in allowed_methods or method in allowed_methods:
                return True

        return False

    @staticmethod
    def format_error(status_code: int, message: str) -> Dict:
        return {"error": message, "status": status_code}

    async def __call__(self, request: Request, call_next):
        """Process the request with a session attached."""
        if self.should_skip(request):
            return await call_next(request)

        try:
            session = await self.manager.load(request)
        except StoreUnavailable as e:
            logger.error(f"Session store unavailable for {request.url.path}: {e}")
            return JSONResponse(
                status_code=503,
                content=self.format_error(503, "Session store unavailable"),
            )

        request.state.session = session
        try:
            response = await call_next(request)
        except StoreUnavailable as e:
            logger.error(f"Session store unavailable during {request.url.path}: {e}")
            await self.manager.settle(session)
            return JSONResponse(
                status_code=503,
                content=self.format_error(503, "Session store unavailable"),
            )

        await self.manager.commit(session, response)
        return response


def create_session_middleware(
    manager: SessionManager,
    skip_paths: Optional[Dict[str, list]] = None,
) -> SessionMiddleware:
    """
    Factory function to create session middleware.

    Args:
        manager: SessionManager instance
        skip_paths: Extra paths to serve without a session {"/path": ["GET"]}

    Returns:
        Configured SessionMiddleware instance
    """
    default_skip_paths = {
        "/health": ["GET"],
        "/metrics": ["GET"],
    }

    if skip_paths:
        default_skip_paths.update(skip_paths)

    return SessionMiddleware(manager=manager, skip_paths=default_skip_paths)


def get_session(request: Request) -> Session:
    """FastAPI dependency returning the current request's session."""
    session = getattr(request.state, "session", None)
    if session is None:
        raise HTTPException(500, "Session middleware is not installed")
    return session
