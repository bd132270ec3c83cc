from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_DEVICE_PATH_ENV = "SENSOR_DEVICE_PATH"
_BAUD_RATE_ENV = "SENSOR_BAUD_RATE"
_READ_TIMEOUT_ENV = "SENSOR_READ_TIMEOUT_MS"
_METRICS_HOST_ENV = "METRICS_HOST"
_METRICS_PORT_ENV = "METRICS_PORT"
_METRIC_NAME_ENV = "METRIC_NAME"
_METRIC_HELP_ENV = "METRIC_HELP"
_ERROR_LOG_INTERVAL_ENV = "READ_ERROR_LOG_INTERVAL"
_MAX_BACKOFF_ENV = "READ_ERROR_MAX_BACKOFF"
_GRACE_PERIOD_ENV = "SHUTDOWN_GRACE_PERIOD"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    device_path: str = "/dev/ttyACM0"
    baud_rate: int = 9600
    read_timeout_ms: int = 2000
    metrics_host: str = "0.0.0.0"
    metrics_port: int = 9898
    metric_name: str = "moisture"
    metric_help: str = "Soil Moisture"
    read_error_log_interval: float = 10.0
    read_error_max_backoff: float = 5.0
    shutdown_grace_period: float = 10.0
    log_level: str = "INFO"


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_int_env(name: str, default: int, minimum: int = 1) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _read_float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    defaults = Settings()
    return Settings(
        device_path=_read_str_env(_DEVICE_PATH_ENV, defaults.device_path),
        baud_rate=_read_int_env(_BAUD_RATE_ENV, defaults.baud_rate),
        read_timeout_ms=_read_int_env(_READ_TIMEOUT_ENV, defaults.read_timeout_ms),
        metrics_host=_read_str_env(_METRICS_HOST_ENV, defaults.metrics_host),
        metrics_port=_read_int_env(_METRICS_PORT_ENV, defaults.metrics_port, minimum=0),
        metric_name=_read_str_env(_METRIC_NAME_ENV, defaults.metric_name),
        metric_help=_read_str_env(_METRIC_HELP_ENV, defaults.metric_help),
        read_error_log_interval=_read_float_env(
            _ERROR_LOG_INTERVAL_ENV, defaults.read_error_log_interval
        ),
        read_error_max_backoff=_read_float_env(
            _MAX_BACKOFF_ENV, defaults.read_error_max_backoff
        ),
        shutdown_grace_period=_read_float_env(
            _GRACE_PERIOD_ENV, defaults.shutdown_grace_period
        ),
        log_level=_read_log_level(defaults.log_level),
    )
