"""
Sentry error tracking integration
"""
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.redis import RedisIntegration
from sentry_sdk.integrations.celery import CeleryIntegration

from app.core.config import settings


def sentry_active() -> bool:
    return settings.SENTRY_ENABLED and bool(settings.SENTRY_DSN)


def init_sentry():
    """Initialize Sentry error tracking"""
    if not sentry_active():
        return

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        release=f"catalog-sync@{settings.VERSION}",
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
            RedisIntegration(),
            CeleryIntegration(),
        ],
        send_default_pii=False,
    )


def capture_exception(exception: Exception, context: Optional[dict] = None):
    """
    Capture exception to Sentry

    Args:
        exception: Exception to capture
        context: Mapping of context name to context dict
    """
    if not sentry_active():
        return

    with sentry_sdk.new_scope() as scope:
        for key, value in (context or {}).items():
            scope.set_context(key, value)
        sentry_sdk.capture_exception(exception)
