"""Run the relay with uvicorn: ``python -m voice_relay``."""

from __future__ import annotations

import uvicorn

from voice_relay.config.server import HOST, PORT
from voice_relay.config.logging import LOG_LEVEL


def main() -> None:
    uvicorn.run("voice_relay.server:app", host=HOST, port=PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
