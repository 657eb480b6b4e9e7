"""
Bella Planner -- Application Entry Point.

Starts the FastAPI server via uvicorn, or runs the weekly kickoff job.

Usage:
    python main.py              # API server (reload with BELLA_DEV_MODE=1)
    python main.py kickoff      # Start this week's planning conversation
    uvicorn main:app --host 0.0.0.0 --port 8000  # Production
"""

from __future__ import annotations

import asyncio
import sys

import uvicorn

from bella.api import create_app
from bella.config.settings import get_settings
from bella.lib.database import get_session_factory, init_db
from bella.lib.logging import setup_logging
from bella.workflows import run_weekly_kickoff

setup_logging(get_settings())
app = create_app()


async def _kickoff() -> None:
    init_db()
    with get_session_factory()() as db:
        result = await run_weekly_kickoff(db)
    print(f"Started planning session {result.session_id}")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "kickoff":
        asyncio.run(_kickoff())
        sys.exit(0)

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.dev_mode,
        log_level="info",
    )
