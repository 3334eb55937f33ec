"""Session relay between browser clients and the OpenAI realtime API."""

__version__ = "0.1.0"

__all__ = ["__version__"]
