"""Session management: config record, lifecycle, serialized persistence."""

from session_keeper.session.executor import SerialExecutor as SerialExecutor
from session_keeper.session.manager import SessionConfigManager as SessionConfigManager
from session_keeper.session.model import SessionConfig as SessionConfig

__all__ = ["SerialExecutor", "SessionConfig", "SessionConfigManager"]
