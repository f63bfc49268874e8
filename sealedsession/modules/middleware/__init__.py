"""
Session Middleware Module - Black Box Interface

Purpose: Attach a session to every request of a FastAPI application
Interface: SessionMiddleware, create_session_middleware(), get_session()
Hidden: Cookie transport, commit ordering, store error mapping

Can be used by any FastAPI/Starlette app through @app.middleware("http").
"""

from .session import SessionMiddleware, create_session_middleware, get_session

__all__ = ["SessionMiddleware", "create_session_middleware", "get_session"]
