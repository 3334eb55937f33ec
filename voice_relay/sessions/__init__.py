from .reaper import IdleReaper
from .gateway import RelayGateway
from .machine import SessionMachine
from .registry import SessionRegistry
from .outbox import OutboundEvent, SessionOutbox

__all__ = ["IdleReaper", "OutboundEvent", "RelayGateway", "SessionMachine", "SessionOutbox", "SessionRegistry"]
