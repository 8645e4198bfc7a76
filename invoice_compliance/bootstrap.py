"""Startup wiring for applications embedding the compliance core."""

from typing import Optional

from invoice_compliance.observability.logging import init_logging
from invoice_compliance.observability.tracing import init_tracing
from invoice_compliance.settings import Settings, get_settings


def init_observability(settings: Optional[Settings] = None) -> None:
    """
    Initialize logging and tracing from settings.

    Call once at process startup, before the first service is used.

    Args:
        settings (Optional[Settings]): Settings to use (defaults to the global instance)
    """
    settings = settings or get_settings()
    init_logging(settings.LOG_LEVEL, log_dir=settings.LOG_DIR, to_files=settings.LOG_TO_FILES)
    init_tracing(settings.SERVICE_NAME)
