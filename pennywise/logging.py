import logging
import sys

from pennywise.settings import settings

TEXT_FORMAT = "%(levelname)s %(name)s: %(message)s"

# Third-party loggers that drown out bill and ledger events.
QUIET_LOGGERS = {
    # SQL echo is noisy even at INFO; only surface engine warnings.
    "sqlalchemy.engine": logging.WARNING,
    # Locale lookups on every Faker() in the seed script.
    "faker": logging.INFO,
}


def configure_logging() -> None:
    """Send pennywise logs to stderr, as text or one JSON object per line.

    Call once at startup and again via ``reconfigure()`` after Alembic's
    ``fileConfig`` replaces the root handlers.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)

    if settings.log_json:
        from pythonjsonlogger.json import JsonFormatter

        handler.setFormatter(
            JsonFormatter(
                fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
                rename_fields={"asctime": "timestamp", "levelname": "level"},
                static_fields={"service": "pennywise", "owner_id": settings.owner_id},
            )
        )
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(level, quiet_level))


reconfigure = configure_logging
