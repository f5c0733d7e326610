"""
Application lifecycle event handlers.

Manages startup and shutdown of the database engine and warms up the
notification gateways used for one-time codes.
"""

from typing import Callable

import structlog
from fastapi import FastAPI

from core.config import settings
from db.session import close_db, init_db

logger = structlog.get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable:
    """Create startup event handler."""

    async def start_app() -> None:
        logger.info("app_starting", app_name=settings.APP_NAME, app_env=settings.APP_ENV)

        await init_db()
        logger.info("database_initialized")

        # Gateways initialize lazily too; failures here only disable delivery
        from services.email_service import email_service
        from services.sms_service import sms_service

        await sms_service.initialize()
        await email_service.initialize()

        if settings.debug_otp_enabled:
            logger.warning("debug_otp_echo_enabled")

        logger.info("app_started", app_name=settings.APP_NAME)

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable:
    """Create shutdown event handler."""

    async def stop_app() -> None:
        logger.info("app_shutting_down", app_name=settings.APP_NAME)

        await close_db()

        logger.info("app_shutdown_complete", app_name=settings.APP_NAME)

    return stop_app
