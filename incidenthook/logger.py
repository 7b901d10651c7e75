# incidenthook/logger.py
import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# librerías que en DEBUG tapan los logs propios
NOISY_LOGGERS = ("sqlalchemy.engine", "urllib3", "multipart")


def resolve_level(level) -> int:
    """'debug' / 'INFO' / 10 -> nivel numérico; desconocido -> INFO."""
    if isinstance(level, int):
        return level
    numeric = getattr(logging, str(level or "INFO").strip().upper(), None)
    return numeric if isinstance(numeric, int) else logging.INFO


def setup_logging(level="INFO") -> int:
    numeric = resolve_level(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    # un solo handler aunque create_app se llame varias veces (tests, reload)
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(numeric)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))
    return numeric
