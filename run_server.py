"""Run the Snapgram API under Uvicorn."""
from __future__ import annotations

import os

import uvicorn

from snapgram.config import get_settings


def main() -> None:
  settings = get_settings()
  host = os.getenv("SNAPGRAM_SERVER_HOST", "0.0.0.0")
  port = int(os.getenv("SNAPGRAM_SERVER_PORT", "8000"))
  reload = os.getenv("UVICORN_RELOAD", "false").lower() == "true"
  uvicorn.run(
    "snapgram.main:app",
    host=host,
    port=port,
    reload=reload,
    log_level=settings.log_level.lower(),
  )


if __name__ == "__main__":
  main()
