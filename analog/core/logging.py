import sys
import structlog
import logging
from analog.core.config import settings

def setup_logging():
    """
    Configures structlog: flat JSON in production, coloured console
    output everywhere else. DEBUG lowers the threshold so skipped filter
    conditions and SQL echo become visible.
    """
    level = logging.DEBUG if settings.DEBUG else logging.INFO

    # Shared processors (context vars, level, timestamp, callsite)
    shared_processors = [
        structlog.contextvars.merge_contextvars, # request_id / filter_id bound per request
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
    ]

    if settings.ENVIRONMENT == "production":
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(colors=settings.ENVIRONMENT == "development"),
        ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )

    # Uvicorn and SQLAlchemy keep using stdlib logging
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    def handle_exception(exc_type, exc_value, exc_traceback):
        """
        Logs crashes through structlog instead of the bare traceback printer.
        """
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        structlog.get_logger().critical(
            "uncaught_exception",
            exc_info=(exc_type, exc_value, exc_traceback)
        )

    sys.excepthook = handle_exception
