"""Clients a worker uses: one to reach the master, one to reach peer workers."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

from minimr.types import KeyValue
from minimr.worker_rpc import _Connection, _RemoteError, _split_address

_log = logging.getLogger(__name__)


class MasterRpcError(RuntimeError):
    """The master could not be reached or refused a request."""


class MasterRpcClient:
    """Calls a worker makes on the master: registration and intermediate-file reports."""

    def __init__(
        self,
        *,
        call_timeout: float = 2.0,
        register_attempts: int = 3,
        retry_delay: float = 0.5,
    ) -> None:
        self.call_timeout = call_timeout
        self.register_attempts = register_attempts
        self.retry_delay = retry_delay

    def connect(self, address: str) -> _Connection:
        """Return a handle on the master; raises ValueError for a malformed address."""
        try:
            host, port = _split_address(address)
        except ValueError:
            _log.warning("Connect server [ip: %s] failed!", address)
            raise
        return _Connection(host, port)

    def register_worker(self, worker_address: str, uuid: str, master_address: str) -> int:
        """Register this worker with the master and return the id it assigned.

        Retries a few times; raises MasterRpcError when every attempt fails.
        """
        _log.debug("Worker ip: %s is starting to register master", worker_address)
        conn = self.connect(master_address)
        payload = {"worker_ip": worker_address, "uuid": uuid}
        last_error: Exception | None = None
        for attempt in range(1, self.register_attempts + 1):
            try:
                reply = conn.call("RegisterWorker", payload, timeout=self.call_timeout)
            except (OSError, _RemoteError) as exc:
                last_error = exc
            else:
                if reply.get("is_success") is True:
                    try:
                        worker_id = int(reply.get("id", 0))
                    except (TypeError, ValueError) as exc:
                        last_error = exc
                    else:
                        _log.debug("Worker ip: %s register successful", worker_address)
                        return worker_id
                else:
                    last_error = MasterRpcError("master refused the registration")
            _log.warning(
                "Worker ip: %s register attempt %d failed: %s", worker_address, attempt, last_error
            )
            if attempt < self.register_attempts:
                time.sleep(self.retry_delay)
        _log.error(
            "Worker ip: %s failed to register after %d attempts",
            worker_address,
            self.register_attempts,
        )
        raise MasterRpcError(
            f"worker {worker_address} failed to register after "
            f"{self.register_attempts} attempts: {last_error}"
        ) from last_error

    def update_imd_files(
        self, uuid: str, filenames: Iterable[str], worker_id: int, master_address: str
    ) -> bool:
        """Report intermediate files to the master; False when it rejects them.

        Returns False for a malformed master address and raises MasterRpcError
        when the master cannot be reached or reports a failure.
        """
        _log.debug("Worker ip: %s is update intermediate files", uuid)
        try:
            conn = self.connect(master_address)
        except ValueError:
            return False
        payload: dict[str, Any] = {"uuid": uuid, "filenames": list(filenames), "id": worker_id}
        try:
            reply = conn.call("UpdateIMDFiles", payload, timeout=self.call_timeout)
        except (OSError, _RemoteError) as exc:
            raise MasterRpcError(f"Update intermediate files failed, err: {exc}") from exc
        return reply.get("result") is True


class PeerWorkerClient:
    """Fetches intermediate files held by other workers."""

    def __init__(self, *, call_timeout: float = 10.0) -> None:
        self.call_timeout = call_timeout

    def connect(self, address: str) -> _Connection:
        """Return a handle on a peer worker; raises ValueError for a malformed address."""
        host, port = _split_address(address)
        return _Connection(host, port)

    def read_imd_file(self, filename: str, worker_address: str) -> list[KeyValue] | None:
        """Return the pairs of an intermediate file on a peer, or None when that fails."""
        _log.debug("[Worker] Read intermediate files from worker ip: %s", worker_address)
        conn = self.connect(worker_address)
        try:
            reply = conn.call("GetIMDFile", {"file_name": filename}, timeout=self.call_timeout)
        except (OSError, _RemoteError) as exc:
            _log.warning("Get immediate files failed, err: %s", exc)
            return None
        entries = reply.get("key_values") or []
        if not isinstance(entries, list):
            _log.warning("Get immediate files failed, err: key_values is not a list")
            return None
        pairs = []
        for entry in entries:
            if not isinstance(entry, dict):
                _log.warning("Get immediate files failed, err: malformed pair")
                return None
            pairs.append(KeyValue(str(entry.get("key", "")), str(entry.get("value", ""))))
        return pairs