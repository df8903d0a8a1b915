#!/usr/bin/env python3
"""
Lending Tracker Entry Point

Starts the FastAPI server with settings from the environment (LENDING_*).
"""

import sys

import uvicorn

from lending_tracker.config import get_config
from lending_tracker.logging_config import setup_logging


def run_server(host: str, port: int, workers: int = 1, log_level: str = "info"):
    """Run the FastAPI server"""
    uvicorn.run(
        "lending_tracker.api:app",
        host=host,
        port=port,
        workers=workers,
        log_level=log_level
    )


if __name__ == "__main__":
    settings = get_config()
    setup_logging(settings.log_level, settings.log_format)

    print("💸 Starting Lending Tracker...")
    print(f"🗄️  Storage: {settings.storage_backend}")
    print(f"📨 Notifications: {settings.notification_channel if settings.notifications_enabled else 'disabled'}")
    print(f"🌐 API available at: http://localhost:{settings.api_port}")
    print(f"📚 Documentation at: http://localhost:{settings.api_port}/docs")
    print()

    try:
        run_server(
            host=settings.api_host,
            port=settings.api_port,
            workers=settings.api_workers,
            log_level=settings.log_level.lower()
        )
    except KeyboardInterrupt:
        print("\n👋 Shutting down Lending Tracker...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
