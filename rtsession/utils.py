from datetime import datetime
from logging import getLogger, basicConfig, DEBUG, INFO, WARNING, FileHandler, Formatter, Filter, LogRecord
from pathlib import Path
from typing import Optional

from config import LOG_LEVEL, LOG_PATH


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

# Top-level logger names owned by this project. Everything else is a library.
SESSION_LOGGERS = frozenset({"rtsession", "chat", "__main__"})

# LOG_LEVEL presets on top of the plain level names.
_LEVEL_PRESETS = {"DEV": DEBUG, "PROD": WARNING, "DEBUG": DEBUG, "INFO": INFO, "WARNING": WARNING}

_RECORD_FORMAT = "%(asctime)s %(levelname)s [%(name)s.%(funcName)s] %(message)s"


class SessionTraceFilter(Filter):
    """Session loggers pass at any level, libraries only from INFO up."""

    def filter(self, record: LogRecord) -> bool:
        if record.name.partition(".")[0] in SESSION_LOGGERS:
            return True
        return record.levelno >= INFO


def resolve_level(name: str = LOG_LEVEL) -> int:
    """Map a LOG_LEVEL value to a logging level; unknown names fall back to INFO."""
    return _LEVEL_PRESETS.get(name.upper(), INFO)


def setup_logging(level: Optional[int] = None, log_dir: Path = LOG_PATH) -> Path:
    """
    Console logging at ``level`` (default: resolved from LOG_LEVEL), plus a
    per-run trace file in ``log_dir`` holding every session record and
    library records from INFO up.

    Returns the trace file path.
    """
    basicConfig(level=resolve_level() if level is None else level, format=_RECORD_FORMAT)
    # websockets logs every frame at DEBUG, audio deltas would flood the trace.
    getLogger("websockets").setLevel(INFO)
    getLogger("asyncio").setLevel(WARNING)

    log_dir.mkdir(parents=True, exist_ok=True)
    trace_path = log_dir / f"session_{datetime.now():%Y%m%d_%H%M%S}.log"
    trace = FileHandler(trace_path, encoding="utf-8")
    trace.setLevel(DEBUG)
    trace.setFormatter(Formatter(_RECORD_FORMAT))
    trace.addFilter(SessionTraceFilter())
    getLogger().addHandler(trace)

    getLogger(__name__).info("[RT] Session trace: %s", trace_path)
    return trace_path
