"""
Sealed Session - Encrypted-cookie sessions backed by Redis

Server-side session layer for ASGI applications.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- storage: Key-value persistence with TTL (Redis, in-memory)
- crypto: Encryption of the session identifier carried in the cookie
- session: Session identity, mutation tracking and write-through persistence
- middleware: HTTP middleware wiring sessions into a request pipeline
"""

__version__ = "1.0.0"
