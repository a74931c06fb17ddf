"""
Loguru sink setup

Every line carries the service context; @Logger.io lines also carry the call
target and the start time of the call chain. Standard-library logging (uvicorn,
SQLAlchemy, httpx, the stripe SDK) is routed through the same sinks.
"""

from contextvars import ContextVar
from datetime import datetime
from enum import StrEnum
import logging
import os
import sys
from typing import TYPE_CHECKING
import zoneinfo

from loguru import logger as loguru_logger


if TYPE_CHECKING:
    from loguru import Logger as LoguruLogger

from src.platform.config.core_setting import settings
from src.platform.constant.path import LOG_DIR
from src.platform.logging.service_context import get_service_context


# Use test log directory if in test environment
LOG_DIR = os.environ.get('TEST_LOG_DIR', LOG_DIR)


# Keys whose values never reach a log line (webhook signatures, provider credentials)
SENSITIVE_KEYWORDS = {
    'password',
    'secret',
    'client_secret',
    'api_key',
    'authorization',
    'access_token',
    'stripe_signature',
    'paypal_transmission_sig',
}
MAX_LOG_CONTENT_LENGTH = 2000

# Outbound HTTP chatter from the payment provider clients; request lines only in DEBUG
PROVIDER_CLIENT_LOGGERS = ('httpx', 'httpcore', 'stripe')

chain_start_time_var: ContextVar[float] = ContextVar('first_time_var', default=0)
call_depth_var: ContextVar[int] = ContextVar('call_depth_var', default=0)


class ExtraField(StrEnum):
    SERVICE_CONTEXT = 'service_context'
    CHAIN_START_TIME = 'chain_start_time'
    CALL_TARGET = 'call_target'


_intercept_bound_logger = None  # Cached bound logger for InterceptHandler


def _get_intercept_bound_logger() -> 'LoguruLogger':
    """Get or create bound logger with default extra fields (cached)."""
    global _intercept_bound_logger
    if _intercept_bound_logger is None:
        _intercept_bound_logger = loguru_logger.bind(
            **{
                ExtraField.SERVICE_CONTEXT: get_service_context(),
                ExtraField.CHAIN_START_TIME: '',
                ExtraField.CALL_TARGET: '',
            }
        )
    return _intercept_bound_logger


def is_provider_client_noise(record: logging.LogRecord) -> bool:
    return (
        record.name.startswith(PROVIDER_CLIENT_LOGGERS)
        and record.levelno <= logging.INFO
        and not settings.DEBUG
    )


class InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        if is_provider_client_noise(record):
            return

        try:
            level: str | int = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore
            depth += 1

        _get_intercept_bound_logger().opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


# Log format for LoguruIO decorated functions
io_log_format = ' | '.join(
    (
        f'<c>{{extra[{ExtraField.SERVICE_CONTEXT}]}}</>',
        '<lvl>{level:<8}</>',
        f'<c>{{file}}::{{function}}:{{line}}</>=><y>{{extra[{ExtraField.CALL_TARGET}]}}</>',
        '{message}',
        '<lk>{elapsed}</>',
        f'<lk>{{extra[{ExtraField.CHAIN_START_TIME}]:<18}}</>',
    )
)


# Configure logger
loguru_logger.remove()
custom_logger = _get_intercept_bound_logger()

min_log_level = 'DEBUG' if settings.DEBUG else 'INFO'
custom_logger.add(sys.stdout, format=io_log_format, level=min_log_level, enqueue=True)

# Hourly files in DEBUG only; production ships stdout
if settings.DEBUG:
    hour = datetime.now(zoneinfo.ZoneInfo(settings.TIMEZONE)).strftime('%Y-%m-%d_%H')
    prefix = 'test_' if os.environ.get('TEST_LOG_DIR') else 'reconciliation_'
    custom_logger.add(
        f'{LOG_DIR}/{prefix}{hour}.log',
        format=io_log_format,
        rotation='1 hour',
        retention='7 days',
        compression='gz',
        enqueue=True,
        level=min_log_level,
    )

# Intercept standard logging -> loguru
logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
