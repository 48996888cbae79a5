"""
File Store - Durable JSON Document Backend

This module keeps the whole ledger (users, orders, transactions, rates) in a
single JSON file. Every write rewrites the file atomically (temp file + fsync +
rename), so a crash mid-write leaves the previous version intact.

Every call first acquires the backend lock with a bounded timeout; a timeout,
an I/O error or an unreadable file raises StoreUnavailableError so that
LedgerStore can fall back to its in-memory mirror.

Files that USE this module:
- swappoints.app (builds the durable backend from settings.store_file)
- swappoints.adapters.persistence.ledger_store (drives it as the durable path)

Files that this module USES:
- swappoints.domain.errors (StoreUnavailableError)
"""
from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from swappoints.adapters.persistence.base import LedgerBackend
from swappoints.domain.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class JsonFileBackend(LedgerBackend):
    """Durable backend over one JSON file."""

    name = "json_file"

    def __init__(self, path: Path, timeout_seconds: float = 2.0):
        """
        Initialize the file backend.

        Args:
            path: Path of the ledger JSON file (created on first write)
            timeout_seconds: Upper bound on waiting for the backend lock
        """
        self.path = Path(path)
        self.timeout_seconds = timeout_seconds
        self._lock = threading.Lock()

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self.timeout_seconds):
            raise StoreUnavailableError(
                f"Timed out after {self.timeout_seconds}s waiting for {self.path}"
            )
        try:
            yield
        finally:
            self._lock.release()

    def _read(self) -> Dict[str, Dict[str, dict]]:
        if not self.path.exists():
            return {}

        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            # Keep the damaged file in place and leave a copy for the operator
            backup_path = self.path.with_suffix(".json.corrupt")
            try:
                if not backup_path.exists():
                    shutil.copy2(self.path, backup_path)
                    logger.error("Ledger file corrupted, copy saved to %s: %s", backup_path, e)
            except OSError as backup_error:
                logger.error("Failed to back up corrupt ledger file: %s", backup_error)
            raise StoreUnavailableError(f"Ledger file {self.path} is not valid JSON: {e}") from e
        except OSError as e:
            raise StoreUnavailableError(f"Cannot read ledger file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StoreUnavailableError(f"Ledger file {self.path} has an unexpected layout")
        return data

    def _write(self, data: Dict[str, Dict[str, dict]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(
                suffix=".json.tmp",
                dir=str(self.path.parent),
                text=True,
            )
        except OSError as e:
            raise StoreUnavailableError(f"Cannot write ledger file {self.path}: {e}") from e

        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())  # Ensure data is written to disk

            # Atomic rename (replaces target file atomically on Unix/Windows)
            os.replace(temp_path, str(self.path))
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise StoreUnavailableError(f"Cannot write ledger file {self.path}: {e}") from e

    def load(self, collection: str, key: str) -> Optional[dict]:
        with self._locked():
            return self._read().get(collection, {}).get(key)

    def save(self, collection: str, key: str, document: dict) -> None:
        with self._locked():
            data = self._read()
            data.setdefault(collection, {})[key] = document
            self._write(data)

    def scan(self, collection: str) -> List[dict]:
        with self._locked():
            return list(self._read().get(collection, {}).values())

    def ping(self) -> None:
        with self._locked():
            self._read()
            if not os.access(self.path.parent, os.W_OK):
                raise StoreUnavailableError(f"Ledger directory {self.path.parent} is not writable")
