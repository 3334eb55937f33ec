from .link import UpstreamLink, UpstreamConnector

__all__ = ["UpstreamConnector", "UpstreamLink"]
