"""StudyxAi chat relay: a FastAPI endpoint in front of Gemini plus chat clients.

The package provides a FastAPI application factory named ``create_app``
inside ``chat_relay/server.py`` (see :func:`create_app`) and the static
browser client it serves at ``/``.

Typical usage
-------------
from chat_relay import create_app
app = create_app()

or, from the provided launcher:

python scripts/run_server.py --host 0.0.0.0 --port 3000
"""

from __future__ import annotations

from .server import create_app

__all__ = ["create_app", "__version__"]

__version__ = "1.0.0"
