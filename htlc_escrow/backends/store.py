"""
Durable record stores for escrow records.

Keys are raw identifier bytes (the hash of the order id). Stores only offer
single-key get/set; the ledger serializes read-modify-write itself.
"""

import os
import json
import logging
import threading
from typing import Dict, List, Optional

from ..core import Escrow

log = logging.getLogger(__name__)


class RecordStore:
    """Key/value store of Escrow records."""

    def get(self, key: bytes) -> Optional[Escrow]:
        raise NotImplementedError

    def set(self, key: bytes, escrow: Escrow):
        raise NotImplementedError

    def keys(self) -> List[bytes]:
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self.keys())


class MemoryRecordStore(RecordStore):
    """In-process store. Records are copied in and out."""

    def __init__(self):
        self._records: Dict[bytes, Dict] = {}

    def get(self, key: bytes) -> Optional[Escrow]:
        data = self._records.get(bytes(key))
        return Escrow.from_dict(data) if data is not None else None

    def set(self, key: bytes, escrow: Escrow):
        self._records[bytes(key)] = escrow.to_dict()

    def keys(self) -> List[bytes]:
        return list(self._records)


class JsonFileRecordStore(RecordStore):
    """
    Store persisted to a single JSON file.

    Layout: {"<identifier hex>": <Escrow.to_dict()>, ...}

    The whole map is loaded on construction and rewritten after every set
    (temp file + os.replace, so a crash never leaves a torn file).
    """

    def __init__(self, path: str):
        self.path = os.path.expanduser(path)
        self._records: Dict[str, Dict] = {}
        self._lock = threading.Lock()
        self._load()

    def _load(self):
        if not os.path.exists(self.path):
            return
        with open(self.path, "r") as f:
            self._records = json.load(f)
        log.info(f"Loaded {len(self._records)} escrow records from {self.path}")

    def _save(self):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w") as f:
            json.dump(self._records, f, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)

    def get(self, key: bytes) -> Optional[Escrow]:
        with self._lock:
            data = self._records.get(bytes(key).hex())
        return Escrow.from_dict(data) if data is not None else None

    def set(self, key: bytes, escrow: Escrow):
        with self._lock:
            self._records[bytes(key).hex()] = escrow.to_dict()
            self._save()

    def keys(self) -> List[bytes]:
        with self._lock:
            return [bytes.fromhex(k) for k in self._records]
