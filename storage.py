# storage.py
# Encrypted bucket store: an AES-GCM encrypted SQLite file holding one JSON
# payload per named bucket (medicines, measurements, family members, streak,
# preferences). Callers read a snapshot in and write a snapshot out.

import json
import os
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, List, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from adherence import mark_taken
from applog import logger
from config import (BUCKET_FAMILY, BUCKET_MEASUREMENTS, BUCKET_MEDICINES,
                    BUCKET_PREFERENCES, BUCKET_STREAK, Paths, default_paths)
from records import FamilyMember, Measurement, Medicine

_CRYPTO_LOCK = RLock()

# failures that mean "treat the bucket as absent"
_READ_ERRORS = (InvalidTag, sqlite3.Error, OSError, ValueError)


# -------------------------
# Crypto utilities
# -------------------------
def _atomic_write_bytes(path: Path, data: bytes):
    tmp = path.with_suffix(path.suffix + f".tmp.{uuid.uuid4().hex}")
    tmp.parent.mkdir(parents=True, exist_ok=True)
    tmp.write_bytes(data)
    tmp.replace(path)


def aes_encrypt(data: bytes, key: bytes) -> bytes:
    aes = AESGCM(key)
    nonce = os.urandom(12)
    return nonce + aes.encrypt(nonce, data, None)


def aes_decrypt(data: bytes, key: bytes) -> bytes:
    if not data or len(data) < 12:
        raise InvalidTag("ciphertext too short")
    aes = AESGCM(key)
    nonce, ct = data[:12], data[12:]
    return aes.decrypt(nonce, ct, None)


def get_or_create_key(key_path: Path) -> bytes:
    with _CRYPTO_LOCK:
        if key_path.exists():
            d = key_path.read_bytes()
            if len(d) >= 32:
                return d[:32]
            logger.warning("key file truncated; generating a new key")
        key = AESGCM.generate_key(bit_length=256)
        _atomic_write_bytes(key_path, key)
        logger.info("key stored: file")
        return key


# -------------------------
# Encrypted SQLite buckets
# -------------------------
class BucketStore:
    def __init__(self, key: bytes, paths: Paths):
        self.key = key
        self.paths = paths.ensure()

    @property
    def db_path(self) -> Path:
        return self.paths.db_path

    def _tmp_path(self, prefix: str, suffix: str) -> Path:
        return self.paths.tmp_dir / f"{prefix}.{uuid.uuid4().hex}{suffix}"

    def _ensure_db(self):
        with _CRYPTO_LOCK:
            if self.db_path.exists():
                return
            tmp = self._tmp_path("init", ".db")
            try:
                conn = sqlite3.connect(str(tmp))
                try:
                    conn.execute("""
                        CREATE TABLE buckets (
                            name TEXT PRIMARY KEY,
                            payload TEXT NOT NULL,   -- JSON
                            updated_at TEXT
                        )
                    """)
                    conn.commit()
                finally:
                    conn.close()
                _atomic_write_bytes(self.db_path, aes_encrypt(tmp.read_bytes(), self.key))
                logger.info(f"created encrypted store at {self.db_path}")
            finally:
                tmp.unlink(missing_ok=True)

    def _quarantine(self, reason: Exception):
        ts = datetime.now().strftime("%Y%m%d%H%M%S%f")
        dest = self.db_path.with_name(f"{self.db_path.name}.corrupt.{ts}")
        self.db_path.replace(dest)
        logger.warning(f"unreadable store moved to {dest.name} ({type(reason).__name__}); starting empty")

    def _open_work_copy(self, tmp: Path):
        pt = aes_decrypt(self.db_path.read_bytes(), self.key)
        _atomic_write_bytes(tmp, pt)
        conn = sqlite3.connect(str(tmp))
        try:
            conn.execute("SELECT name FROM buckets LIMIT 1")
        finally:
            conn.close()

    def _open_work_copy_for_write(self, tmp: Path):
        # an unreadable store is set aside and replaced by an empty one
        self._ensure_db()
        try:
            self._open_work_copy(tmp)
        except _READ_ERRORS as e:
            self._quarantine(e)
            self._ensure_db()
            self._open_work_copy(tmp)

    @contextmanager
    def _get_conn(self, write: bool = False):
        tmp = self._tmp_path("work", ".db")
        try:
            with _CRYPTO_LOCK:
                if write:
                    self._open_work_copy_for_write(tmp)
                else:
                    self._open_work_copy(tmp)

                conn = sqlite3.connect(str(tmp))
                conn.row_factory = sqlite3.Row
                try:
                    yield conn
                finally:
                    conn.close()

                if write:
                    _atomic_write_bytes(self.db_path, aes_encrypt(tmp.read_bytes(), self.key))
        finally:
            tmp.unlink(missing_ok=True)

    def read_bucket(self, name: str, default: Any = None) -> Any:
        if not self.db_path.exists():
            return default
        try:
            with self._get_conn() as conn:
                row = conn.execute("SELECT payload FROM buckets WHERE name=?", (name,)).fetchone()
            if row is None:
                return default
            return json.loads(row["payload"])
        except _READ_ERRORS:
            logger.exception(f"read bucket {name!r} failed; using default")
            return default

    def write_bucket(self, name: str, value: Any):
        payload = json.dumps(value, ensure_ascii=False)
        with self._get_conn(write=True) as conn:
            conn.execute("""
                INSERT INTO buckets (name, payload, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET payload=excluded.payload, updated_at=excluded.updated_at
            """, (name, payload, datetime.now().isoformat(timespec="seconds")))
            conn.commit()

    # -------------------------
    # Typed snapshots
    # -------------------------
    def _load_list(self, name: str, parse) -> list:
        raw = self.read_bucket(name, [])
        if not isinstance(raw, list):
            logger.warning(f"bucket {name!r} is not a list; ignoring")
            return []
        out = []
        for item in raw:
            try:
                out.append(parse(item))
            except (KeyError, TypeError, ValueError):
                logger.warning(f"skipping malformed {name} record: {item!r}")
        return out

    def load_medicines(self) -> List[Medicine]:
        return self._load_list(BUCKET_MEDICINES, Medicine.from_dict)

    def save_medicines(self, medicines: List[Medicine]):
        self.write_bucket(BUCKET_MEDICINES, [m.to_dict() for m in medicines])

    def add_medicine(self, medicine: Medicine) -> List[Medicine]:
        catalog = self.load_medicines() + [medicine]
        self.save_medicines(catalog)
        logger.info(f"added medicine id={medicine.id} {medicine.name} times={medicine.times}")
        return catalog

    def take_dose(self, medicines: List[Medicine], med_id: str, hm: str,
                  ref: datetime) -> List[Medicine]:
        """
        Save the catalog with ``med_id``'s ``hm`` slot taken for ``ref``'s day
        and return it. ``medicines`` itself is never modified, so a failed
        save leaves the caller's view as it was.
        """
        updated = [mark_taken(m, hm, ref) if m.id == med_id else m for m in medicines]
        self.save_medicines(updated)
        logger.info(f"dose taken: med_id={med_id} time={hm}")
        return updated

    def load_measurements(self) -> List[Measurement]:
        return self._load_list(BUCKET_MEASUREMENTS, Measurement.from_dict)

    def append_measurement(self, measurement: Measurement) -> List[Measurement]:
        log = self.load_measurements() + [measurement]
        self.write_bucket(BUCKET_MEASUREMENTS, [m.to_dict() for m in log])
        logger.info(f"measurement added id={measurement.id} kind={measurement.kind}")
        return log

    def load_family(self) -> List[FamilyMember]:
        return self._load_list(BUCKET_FAMILY, FamilyMember.from_dict)

    def save_family(self, members: List[FamilyMember]):
        self.write_bucket(BUCKET_FAMILY, [m.to_dict() for m in members])

    def load_streak(self) -> int:
        raw = self.read_bucket(BUCKET_STREAK, 0)
        try:
            return max(0, int(raw))
        except (TypeError, ValueError):
            return 0

    def save_streak(self, streak: int):
        self.write_bucket(BUCKET_STREAK, int(streak))

    def load_preferences(self) -> dict:
        raw = self.read_bucket(BUCKET_PREFERENCES, {})
        return raw if isinstance(raw, dict) else {}

    def save_preferences(self, prefs: dict):
        self.write_bucket(BUCKET_PREFERENCES, dict(prefs))


def open_store(paths: Optional[Paths] = None) -> BucketStore:
    paths = paths or default_paths()
    return BucketStore(get_or_create_key(paths.key_path), paths)
