"""
Golf Course - Main entry point for container deployment.
This file applies migrations and runs the FastAPI application from the golfcourse package.
"""
import logging
import os
import subprocess

import uvicorn

from golfcourse.main import app

logger = logging.getLogger("golfcourse.entrypoint")


def run_migrations() -> None:
    logger.info("Running database migrations...")
    try:
        subprocess.run(["alembic", "upgrade", "head"], check=True)
        logger.info("Migrations complete.")
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        # Tables are also created on startup, so the server can still come up
        logger.warning("Migration failed: %s", e)


if __name__ == "__main__":
    run_migrations()
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
