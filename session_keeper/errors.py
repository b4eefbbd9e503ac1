"""Project-level exception hierarchy."""


class SessionKeeperError(Exception):
    """Base for all session-keeper exceptions."""


class ConfigError(SessionKeeperError):
    """Configuration file could not be loaded or validated."""


class StorageError(SessionKeeperError):
    """Secure store access failed."""


class StorageUnavailableError(StorageError):
    """Store get/put/clear failed at the backend boundary."""


class StorageWriteFailedError(StorageUnavailableError):
    """Store put/clear failed; the session change was not persisted."""


class SessionError(SessionKeeperError):
    """Session persistence or lifecycle failed."""


class MalformedRecordError(SessionError):
    """Stored bytes do not decode into a session config."""


class ExpiredRecordError(SessionError):
    """Stored session config decoded but is no longer valid."""
