"""
Session error taxonomy.

Store and decryption errors never reach clients as error payloads:
decryption failures are downgraded to "no session" by the manager and a
lost store connection escalates to the process-level watchdog.
"""


class SessionError(Exception):
    """Base class for all session layer errors."""


class StoreUnavailable(SessionError):
    """The backing store connection was lost or rejected an operation."""


class DecryptionFailure(SessionError):
    """A session cookie value could not be decrypted (tampered, stale key or garbage)."""


class SerializationFailure(SessionError):
    """Session state could not be serialized for persistence."""


__all__ = ["SessionError", "StoreUnavailable", "DecryptionFailure", "SerializationFailure"]
