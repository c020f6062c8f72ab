# applog.py
# Named app logger with an in-memory ring (shown on the settings screen)
# and an append-only log file.

import logging
from pathlib import Path
from threading import RLock
from typing import Optional

from config import LOGGER_NAME, LOG_RING_LINES

_LOG_LOCK = RLock()


class RingLog:
    def __init__(self, max_lines=LOG_RING_LINES):
        self.max_lines = int(max_lines)
        self._lines = []
        self._lock = RLock()

    def add(self, line: str):
        line = (line or "").rstrip("\n")
        if not line:
            return
        with self._lock:
            self._lines.append(line)
            if len(self._lines) > self.max_lines:
                self._lines = self._lines[-self.max_lines:]

    def lines(self):
        with self._lock:
            return list(self._lines)

    def text(self) -> str:
        with self._lock:
            return "\n".join(self._lines)

    def clear(self):
        with self._lock:
            self._lines = []


RING = RingLog()


class FileAndRingHandler(logging.Handler):
    def __init__(self, ring: RingLog, log_path: Optional[Path] = None):
        super().__init__()
        self.ring = ring
        self.log_path = Path(log_path) if log_path else None
        self.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))

    def emit(self, record):
        try:
            msg = self.format(record)
        except Exception:
            msg = str(record.getMessage())
        self.ring.add(msg)
        if self.log_path is None:
            return
        try:
            with _LOG_LOCK:
                self.log_path.parent.mkdir(parents=True, exist_ok=True)
                with self.log_path.open("a", encoding="utf-8") as f:
                    f.write(msg + "\n")
        except OSError:
            # the ring still holds the line
            pass


logger = logging.getLogger(LOGGER_NAME)
logger.setLevel(logging.INFO)


def setup_logging(log_path: Optional[Path] = None, ring: RingLog = RING) -> logging.Logger:
    """Attach the file+ring handler once; later calls only retarget the file."""
    for h in logger.handlers:
        if isinstance(h, FileAndRingHandler):
            if log_path is not None:
                h.log_path = Path(log_path)
            return logger
    logger.addHandler(FileAndRingHandler(ring, log_path))
    return logger


def clear_log(log_path: Optional[Path] = None, ring: RingLog = RING):
    ring.clear()
    if log_path is not None:
        try:
            Path(log_path).unlink(missing_ok=True)
        except OSError:
            logger.exception("log file removal failed")
