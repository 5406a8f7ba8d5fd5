"""Executable entry point for the TCU diagnostics FastAPI application.

Process managers can import the stable ``app`` object from ``tcu_api.app``;
``python -m tcu_api.run_server`` starts a local development server.

Environment Variables:
    PORT (int): Override listening port (default 8000).
    TCU_API_LOG_LEVEL (str): Root logging level (default ``INFO``).

Example:
    $ python -m tcu_api.run_server
    $ PORT=9000 python -m tcu_api.run_server
"""

from __future__ import annotations

import logging
import os

import uvicorn

from .app import app


def main() -> None:
    """Launch the ASGI server with development-friendly defaults."""
    logging.basicConfig(
        level=os.getenv("TCU_API_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))


if __name__ == "__main__":
    main()
