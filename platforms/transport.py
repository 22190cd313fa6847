"""Background transport for share-session uploads.

``enqueue`` journals the transfer, starts a non-daemon worker and returns at
once. The interpreter will not exit before the worker finishes, and a later
process can call ``TransportSession.resume`` to collect results that were
never delivered or to re-dispatch transfers cut short by a dead process.
Network problems never raise from ``enqueue``; they arrive through the
completion callback as a ``TransferResult`` carrying an ``ErrorKind``.
"""

import logging
import os
import threading
import uuid
from dataclasses import asdict, dataclass, field
from typing import Optional

import requests

import config
from platforms.base import ErrorKind
from platforms.transfer_journal import COMPLETED, DELIVERED, PENDING, TransferJournal

logger = logging.getLogger(__name__)

# (journal path, transfer id) pairs that have a worker or resume in progress
# in this process.
_live_transfers = set()
_live_lock = threading.Lock()


@dataclass(frozen=True)
class SessionConfiguration:
    identifier: str
    access_token: str = field(repr=False)
    base_url: str = ""
    timeout: float = 30.0
    journal_dir: str = ""

    @classmethod
    def with_randomized_identifier(cls, credential, base_url=None, timeout=None,
                                   journal_dir=None):
        return cls(
            identifier=f"share-{uuid.uuid4().hex}",
            access_token=credential.access_token,
            base_url=(base_url or config.WPCOM_API_BASE).rstrip("/"),
            timeout=timeout if timeout is not None else config.REQUEST_TIMEOUT,
            journal_dir=journal_dir or config.TRANSFER_DIR,
        )

    @classmethod
    def for_identifier(cls, identifier, credential, base_url=None, timeout=None,
                       journal_dir=None):
        """Rebuild the configuration of an earlier session to resume it."""
        return cls(
            identifier=identifier,
            access_token=credential.access_token,
            base_url=(base_url or config.WPCOM_API_BASE).rstrip("/"),
            timeout=timeout if timeout is not None else config.REQUEST_TIMEOUT,
            journal_dir=journal_dir or config.TRANSFER_DIR,
        )


@dataclass
class TransferRequest:
    method: str
    path: str
    asset_kind: str
    data: dict = field(default_factory=dict)
    file_path: Optional[str] = None
    file_field: str = "media[]"
    mime_type: str = ""

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        return cls(**data)


@dataclass
class TransferResult:
    transfer_id: str
    asset_kind: str
    success: bool
    status_code: Optional[int] = None
    payload: Optional[dict] = None
    error_kind: Optional[ErrorKind] = None
    error: str = ""

    def to_dict(self):
        data = asdict(self)
        data["error_kind"] = self.error_kind.value if self.error_kind else None
        return data

    @classmethod
    def from_dict(cls, data):
        data = dict(data)
        if data.get("error_kind"):
            data["error_kind"] = ErrorKind(data["error_kind"])
        return cls(**data)


@dataclass(frozen=True)
class TransferHandle:
    session_id: str
    transfer_id: str


def classify_response(status_code, payload):
    """Return the ErrorKind for a response, or None when it succeeded."""
    if status_code >= 500:
        return ErrorKind.SERVER_ERROR
    if not 200 <= status_code < 300:
        return ErrorKind.PROTOCOL_ERROR
    if not isinstance(payload, dict):
        return ErrorKind.PROTOCOL_ERROR
    return None


class TransportSession:
    def __init__(self, configuration):
        self.configuration = configuration
        self._journal = TransferJournal(configuration.journal_dir, configuration.identifier)
        self._workers = []
        self._lock = threading.Lock()

    @property
    def identifier(self):
        return self.configuration.identifier

    @property
    def journal(self):
        return self._journal

    def enqueue(self, request, on_complete=None):
        transfer_id = uuid.uuid4().hex
        self._claim(transfer_id)
        self._journal.record_pending(transfer_id, request.to_dict())
        logger.info(
            "Enqueued %s transfer %s on session %s",
            request.asset_kind, transfer_id, self.identifier,
        )
        self._start(transfer_id, request, on_complete)
        return TransferHandle(session_id=self.identifier, transfer_id=transfer_id)

    def wait(self, timeout=None):
        """Join outstanding workers. Returns True when none are still running."""
        with self._lock:
            workers = list(self._workers)
        for worker in workers:
            worker.join(timeout)
        return not any(worker.is_alive() for worker in workers)

    @classmethod
    def resume(cls, configuration, on_complete):
        """Deliver undelivered results and re-dispatch interrupted transfers.

        Transfers that still have a live worker in this process are left to
        that worker; only work abandoned by an earlier process is picked up.
        """
        session = cls(configuration)
        claimed = [
            entry["id"] for entry in session._journal.entries()
            if entry["state"] != DELIVERED and session._claim(entry["id"])
        ]
        # Re-read after claiming: a worker may have finished in between.
        for entry in session._journal.entries():
            if entry["id"] not in claimed:
                continue
            if entry["state"] == PENDING:
                logger.info(
                    "Resuming interrupted transfer %s on session %s",
                    entry["id"], session.identifier,
                )
                request = TransferRequest.from_dict(entry["request"])
                session._start(entry["id"], request, on_complete)
                continue
            try:
                if entry["state"] == COMPLETED:
                    result = TransferResult.from_dict(entry["result"])
                    session._deliver(entry["id"], result, on_complete)
            finally:
                session._release(entry["id"])
        return session

    def _claim(self, transfer_id):
        key = (os.path.abspath(self._journal.path), transfer_id)
        with _live_lock:
            if key in _live_transfers:
                return False
            _live_transfers.add(key)
            return True

    def _release(self, transfer_id):
        with _live_lock:
            _live_transfers.discard((os.path.abspath(self._journal.path), transfer_id))

    def _start(self, transfer_id, request, on_complete):
        worker = threading.Thread(
            target=self._run,
            args=(transfer_id, request, on_complete),
            name=f"{self.identifier}-{transfer_id[:8]}",
            daemon=False,
        )
        with self._lock:
            self._workers.append(worker)
        worker.start()

    def _run(self, transfer_id, request, on_complete):
        try:
            result = self._perform(transfer_id, request)
            self._journal.record_completed(transfer_id, result.to_dict())
            if result.success:
                logger.info("Transfer %s completed (%s)", transfer_id, result.status_code)
            else:
                logger.warning(
                    "Transfer %s failed: %s %s",
                    transfer_id, result.error_kind.value, result.error,
                )
            self._deliver(transfer_id, result, on_complete)
        finally:
            self._release(transfer_id)

    def _deliver(self, transfer_id, result, on_complete):
        # Undelivered results stay "completed" so the next resume retries delivery.
        if on_complete is None:
            return
        try:
            on_complete(result)
        except Exception:
            logger.exception("Completion handler failed for transfer %s", transfer_id)
            return
        self._journal.record_delivered(transfer_id)

    def _perform(self, transfer_id, request):
        url = f"{self.configuration.base_url}{request.path}"
        headers = {"Authorization": f"Bearer {self.configuration.access_token}"}

        def failed(kind, message, status=None, payload=None):
            return TransferResult(
                transfer_id=transfer_id,
                asset_kind=request.asset_kind,
                success=False,
                status_code=status,
                payload=payload,
                error_kind=kind,
                error=message,
            )

        try:
            if request.file_path:
                with open(request.file_path, "rb") as stream:
                    files = {
                        request.file_field: (
                            os.path.basename(request.file_path),
                            stream,
                            request.mime_type or "application/octet-stream",
                        )
                    }
                    resp = requests.request(
                        request.method, url, headers=headers, data=request.data,
                        files=files, timeout=self.configuration.timeout,
                    )
            else:
                resp = requests.request(
                    request.method, url, headers=headers, data=request.data,
                    timeout=self.configuration.timeout,
                )
        except requests.RequestException as e:
            return failed(ErrorKind.NETWORK_FAILURE, str(e))
        except OSError as e:
            return failed(ErrorKind.MEDIA_UNREADABLE, str(e))

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        error_kind = classify_response(resp.status_code, payload)
        if error_kind is not None:
            detail = payload if isinstance(payload, dict) else None
            message = resp.text[:200] if detail is None else detail.get("message", "")
            return failed(
                error_kind,
                f"HTTP {resp.status_code}: {message}",
                status=resp.status_code,
                payload=detail,
            )

        return TransferResult(
            transfer_id=transfer_id,
            asset_kind=request.asset_kind,
            success=True,
            status_code=resp.status_code,
            payload=payload,
        )
