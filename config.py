# config.py
# Constants and data-directory resolution shared by the app, the background
# service and the tests.

import os
import uuid
from pathlib import Path

APP_NAME = "DoseWise"
LOGGER_NAME = "dosewise"

# -------------------------
# Schedule thresholds (minutes)
# -------------------------
OVERDUE_CRITICAL_MINUTES = 30
DUE_SOON_MINUTES = 60

# re-evaluation cadence, matches the minute granularity of schedules
TICK_SECONDS = 60

# statistics windows
PERIOD_DAYS = {"week": 7, "month": 30, "year": 365}
STREAK_MAX_DAYS = 365

# -------------------------
# Closed vocabularies (stored as free text)
# -------------------------
MEDICINE_TYPES = ["medicine", "vitamin", "supplement", "birth-control", "insulin", "other"]
FREQUENCIES = ["daily", "every-two-days", "weekly", "as-needed"]
MEASUREMENT_KINDS = ["blood-pressure", "glucose", "weight"]

MEMBER_COLORS = ["#3b82f6", "#8b5cf6", "#ec4899", "#f59e0b", "#10b981"]

# -------------------------
# Storage buckets
# -------------------------
BUCKET_MEDICINES = "medicines"
BUCKET_MEASUREMENTS = "measurements"
BUCKET_FAMILY = "family_members"
BUCKET_STREAK = "streak"
BUCKET_PREFERENCES = "preferences"

LOG_RING_LINES = 800


def _is_writable_dir(p: Path) -> bool:
    try:
        p.mkdir(parents=True, exist_ok=True)
        t = p / f".writetest.{uuid.uuid4().hex}"
        t.write_text("ok", encoding="utf-8")
        t.unlink(missing_ok=True)
        return True
    except OSError:
        return False


def app_base_dir() -> Path:
    """
    DOSEWISE_HOME wins, then the Android private dir, then a folder beside
    the code. Resolved on call so callers (and tests) can redirect it.
    """
    home = os.environ.get("DOSEWISE_HOME")
    if home:
        d = Path(home)
        d.mkdir(parents=True, exist_ok=True)
        return d

    p = os.environ.get("ANDROID_PRIVATE")
    if p:
        d = Path(p) / "dosewise_data"
        if _is_writable_dir(d):
            return d

    d = Path(__file__).resolve().parent / "dosewise_data"
    d.mkdir(parents=True, exist_ok=True)
    return d


class Paths:
    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self.db_path = self.base_dir / "dosewise.db.aes"
        self.key_path = self.base_dir / ".enc_key"
        self.log_path = self.base_dir / "app.log"
        self.tmp_dir = self.base_dir / "tmp"

    def ensure(self) -> "Paths":
        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        return self


def default_paths() -> Paths:
    return Paths(app_base_dir()).ensure()
