"""Custom filters for uvicorn access logging."""

import logging

from signal_relay.settings import app_settings


class ExcludeMetricsFilter(logging.Filter):
    """
    Logging filter to exclude monitoring endpoint requests from access logs.

    Health checks and Prometheus scrapes hit the service every few seconds;
    requests to the paths listed in LOG_EXCLUDED_PATHS are not logged.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        # Access log lines look like: 127.0.0.1:5000 - "GET /health HTTP/1.1" 200
        return not any(
            f" {path} " in message for path in app_settings.LOG_EXCLUDED_PATHS
        )


def install_access_log_filter() -> None:
    """Attach the filter to uvicorn's access logger."""
    logging.getLogger("uvicorn.access").addFilter(ExcludeMetricsFilter())
