from .client import ClientHandle
from .runtime import RuntimeDeps
from .settings import AppSettings
from .session import Session, SessionState, SessionConfig

__all__ = ["AppSettings", "ClientHandle", "RuntimeDeps", "Session", "SessionConfig", "SessionState"]
