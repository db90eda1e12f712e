"""
Sentry Error Monitoring Configuration
Error tracking for the MoveFlow API and bot
"""
import logging

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from moveflow.infrastructure.config import get_config, get_secrets

logger = logging.getLogger("Sentry")

SENSITIVE_KEYS = ['private_key', 'signature', 'password', 'api_key', 'secret', 'mnemonic', 'seed', 'token']


def filter_sensitive_data(event, hint):
    """Remove secrets from Sentry events."""
    if 'request' in event and 'data' in event['request']:
        data = event['request']['data']
        if isinstance(data, dict):
            for key in SENSITIVE_KEYS:
                if key in data:
                    data[key] = '[FILTERED]'

    if 'exception' in event and 'values' in event['exception']:
        for exc in event['exception']['values']:
            if 'value' in exc:
                for key in SENSITIVE_KEYS:
                    if key in exc['value'].lower():
                        exc['value'] = '[FILTERED - sensitive data]'

    return event


def init_sentry() -> bool:
    """Initialize Sentry; disabled when no SENTRY_DSN is configured."""
    dsn = get_secrets().get("SENTRY_DSN")
    if not dsn:
        logger.info("No SENTRY_DSN found - error tracking disabled")
        return False

    config = get_config()
    sentry_sdk.init(
        dsn=dsn,
        environment=config.environment.value,
        traces_sample_rate=config.monitoring.sentry_traces_sample_rate,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.WARNING
            ),
        ],
        before_send=filter_sensitive_data,
        send_default_pii=False,
        # Transient network failures on chain reads
        ignore_errors=[
            ConnectionRefusedError,
            TimeoutError,
        ],
    )

    logger.info(f"Sentry initialized for {config.environment.value}")
    return True


def capture_transaction_breadcrumb(action: str, details: dict = None):
    """Add breadcrumb for payload builds (deposit/withdraw/harvest)."""
    sentry_sdk.add_breadcrumb(
        category="transaction",
        message=action,
        level="info",
        data=details or {}
    )
