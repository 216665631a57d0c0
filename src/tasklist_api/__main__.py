"""
Run the task list server.

Usage:
    python -m tasklist_api
"""
from __future__ import annotations

import uvicorn

from .logging_config import setup_logging
from .main import create_app
from .settings import get_settings


def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    app = create_app(settings)
    # log_config=None keeps the handlers installed by setup_logging
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
