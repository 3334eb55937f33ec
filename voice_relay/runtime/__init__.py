"""Runtime package: logging setup, settings loading, and dependency wiring."""

__all__: list[str] = []
