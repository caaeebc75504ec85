# --- File: core/store.py ---
import os
import sqlite3
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Optional
import config
import logging

from errors import DuplicateCommitmentError, NotFoundError, StorageError
from security.secure_envelope import EnvelopeRecord

# --- Envelope Storage Module ---

class ObjectStore:
    """
    Append-only object area on the local filesystem. One file per envelope blob;
    an existing object is never overwritten.
    """
    def __init__(self, root_path: str = config.RAILX_OBJECT_STORE_PATH):
        self.root_path = os.path.abspath(root_path)
        try:
            os.makedirs(self.root_path, exist_ok=True)
        except OSError as e:
            logging.error(f"Could not create object store root {self.root_path}: {e}")
            raise StorageError("Object store is not available.") from None
        logging.info(f"Object store initialized at {self.root_path}")

    def new_location(self) -> str:
        return f"orders/{int(time.time() * 1000)}-{uuid.uuid4()}.bin"

    def _resolve(self, location: str) -> str:
        if not location or os.path.isabs(location):
            raise StorageError("Invalid blob location.")
        path = os.path.abspath(os.path.join(self.root_path, location))
        if os.path.commonpath([self.root_path, path]) != self.root_path:
            raise StorageError("Invalid blob location.")
        return path

    def put(self, location: str, blob: bytes):
        path = self._resolve(location)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "xb") as f: # create-only
                f.write(blob)
                f.flush()
                os.fsync(f.fileno())
        except FileExistsError:
            logging.error(f"Blob already exists at {location}; refusing to overwrite.")
            raise StorageError("Blob location already in use.") from None
        except OSError as e:
            logging.error(f"Error writing blob to {location}: {e}")
            raise StorageError("Blob upload failed.") from None
        logging.debug(f"Stored {len(blob)}-byte blob at {location}")

    def fetch(self, location: str) -> bytes:
        path = self._resolve(location)
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            logging.error(f"Error reading blob from {location}: {e}")
            raise StorageError("Encrypted blob download failed.") from None


class RecordTable:
    """
    SQLite lookup table keyed by commitment hash. The PRIMARY KEY constraint is the only
    cross-request coordination: first writer wins.
    """
    def __init__(self, db_path: str = config.RAILX_DB_PATH):
        self.db_path = db_path
        self._lock = threading.Lock()
        try:
            self.conn = sqlite3.connect(db_path, check_same_thread=False)
            cursor = self.conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS railx_remittance_records (
                    meta_hash TEXT PRIMARY KEY,
                    enc_key_wrap_hash TEXT NOT NULL,
                    file_path TEXT NOT NULL,
                    wrapped_key_hex TEXT NOT NULL,
                    created_at TEXT NOT NULL -- Stored as ISO string
                )
            """)
            self.conn.commit()
            logging.info(f"Envelope record table initialized at {db_path}")
        except sqlite3.Error as e:
            logging.error(f"Error initializing SQLite record table: {e}")
            raise StorageError("Record table is not available.") from None

    def insert(self, record: EnvelopeRecord):
        with self._lock:
            if self.conn is None:
                raise StorageError("Record table is closed.")
            try:
                self.conn.execute("""
                    INSERT INTO railx_remittance_records
                    (meta_hash, enc_key_wrap_hash, file_path, wrapped_key_hex, created_at)
                    VALUES (?, ?, ?, ?, ?)
                """, (
                    record.commitment_hash,
                    record.auxiliary_hash,
                    record.blob_location,
                    record.wrapped_key_hex,
                    datetime.now(timezone.utc).isoformat(),
                ))
                self.conn.commit()
            except sqlite3.IntegrityError:
                self.conn.rollback()
                logging.warning(f"Duplicate commitment hash {record.commitment_hash[:18]}... rejected.")
                raise DuplicateCommitmentError("A record for this commitment hash already exists.") from None
            except sqlite3.Error as e:
                self.conn.rollback()
                logging.error(f"DB insert error: {e}")
                raise StorageError("DB insert failed.") from None
        logging.info(f"Envelope record saved for {record.commitment_hash[:18]}...")

    def get(self, commitment_hash: str) -> EnvelopeRecord:
        with self._lock:
            if self.conn is None:
                raise StorageError("Record table is closed.")
            try:
                cursor = self.conn.execute(
                    "SELECT meta_hash, enc_key_wrap_hash, file_path, wrapped_key_hex "
                    "FROM railx_remittance_records WHERE meta_hash = ?",
                    (commitment_hash,),
                )
                row = cursor.fetchone()
            except sqlite3.Error as e:
                logging.error(f"DB select error: {e}")
                raise StorageError("DB select failed.") from None
        if row is None:
            logging.info(f"No envelope record for {commitment_hash[:18]}...")
            raise NotFoundError("No record matches this commitment hash.")
        return EnvelopeRecord(
            commitment_hash=row[0],
            auxiliary_hash=row[1],
            blob_location=row[2],
            wrapped_key_hex=row[3],
        )

    def close(self):
        with self._lock:
            if self.conn:
                self.conn.close()
                self.conn = None
                logging.info("SQLite record table connection closed.")


class EnvelopeStore:
    """
    Coordinates the object store and the lookup table. The write is blob first, row second;
    a crash in between leaves an unreachable orphan blob, never a row without a blob.
    """
    def __init__(self, object_store: ObjectStore, record_table: RecordTable):
        self.objects = object_store
        self.records = record_table

    @classmethod
    def from_config(cls, db_path: Optional[str] = None, object_store_path: Optional[str] = None) -> "EnvelopeStore":
        return cls(
            ObjectStore(object_store_path or config.RAILX_OBJECT_STORE_PATH),
            RecordTable(db_path or config.RAILX_DB_PATH),
        )

    def new_blob_location(self) -> str:
        return self.objects.new_location()

    def put(self, record: EnvelopeRecord, blob: bytes):
        self.objects.put(record.blob_location, blob)
        self.records.insert(record)

    def get(self, commitment_hash: str) -> EnvelopeRecord:
        return self.records.get(commitment_hash)

    def fetch_blob(self, location: str) -> bytes:
        return self.objects.fetch(location)

    def close(self):
        self.records.close()
