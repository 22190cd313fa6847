"""JSON journal of a transport session's transfers.

One file per session id under ``config.TRANSFER_DIR``. A record moves
``pending`` -> ``completed`` -> ``delivered``; whatever a process leaves
behind is picked up by the next activation that resumes the session.
"""

import json
import os
import threading
from datetime import datetime, timezone

PENDING = "pending"
COMPLETED = "completed"
DELIVERED = "delivered"

_path_locks = {}
_path_locks_guard = threading.Lock()


def _now():
    return datetime.now(timezone.utc).isoformat()


def _lock_for(path):
    """Every journal opened on the same file in this process shares one lock."""
    with _path_locks_guard:
        return _path_locks.setdefault(os.path.abspath(path), threading.Lock())


class TransferJournal:
    def __init__(self, directory, session_id):
        self.path = os.path.join(directory, f"{session_id}.json")
        self._lock = _lock_for(self.path)

    def _read(self):
        if not os.path.exists(self.path):
            return []
        with open(self.path, "r") as f:
            return json.load(f)

    def _write(self, entries):
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w") as f:
            json.dump(entries, f, indent=2)
        os.replace(tmp_path, self.path)

    def entries(self):
        with self._lock:
            return self._read()

    def record_pending(self, transfer_id, request):
        with self._lock:
            entries = self._read()
            entries.append({
                "id": transfer_id,
                "state": PENDING,
                "request": request,
                "result": None,
                "created_at": _now(),
                "updated_at": _now(),
            })
            self._write(entries)

    def record_completed(self, transfer_id, result):
        self._update(transfer_id, state=COMPLETED, result=result)

    def record_delivered(self, transfer_id):
        self._update(transfer_id, state=DELIVERED)

    def _update(self, transfer_id, **changes):
        with self._lock:
            entries = self._read()
            for entry in entries:
                if entry["id"] == transfer_id:
                    entry.update(changes)
                    entry["updated_at"] = _now()
                    break
            else:
                raise KeyError(f"Unknown transfer: {transfer_id}")
            self._write(entries)

    def in_state(self, state):
        return [e for e in self.entries() if e["state"] == state]
