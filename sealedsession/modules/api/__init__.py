"""
API Module - Black Box Interface

Purpose: Request and response models of the session HTTP API
Interface: Pydantic models
Hidden: Validation rules

The API layer only orchestrates - session logic lives in the session module.
"""

from .models import LoginRequest, SessionResponse

__all__ = ["LoginRequest", "SessionResponse"]
