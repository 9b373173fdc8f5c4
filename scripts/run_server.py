"""Script to launch the StudyxAi chat relay."""

from __future__ import annotations

import argparse
import logging
import os
import sys

import uvicorn

# Ensure src/ is on sys.path (so imports work when run from a checkout)
SRC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from chat_relay.config import load_settings  # noqa: E402
from chat_relay.errors import ConfigError  # noqa: E402
from chat_relay.server import create_app  # noqa: E402

logger = logging.getLogger("chat_relay.run")


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the StudyxAi chat relay.")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a YAML config (default: $STUDYX_CONFIG or config/default.yaml)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind the server to (default: $HOST or config, else 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind the server to (default: $PORT or config, else 3000)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s - %(message)s")

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        logger.error("Startup configuration error: %s", e)
        sys.exit(1)

    logger.info("Config: model=%s key_set=%s", settings.model, bool(settings.api_key))
    app = create_app(settings)

    host = args.host or settings.host
    port = args.port or settings.port
    logger.info("%s backend listening on port %s", settings.persona_name, port)
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
