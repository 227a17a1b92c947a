"""A worker: runs map and reduce tasks and serves its intermediate files."""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
import threading
import uuid as _uuid
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from http.server import ThreadingHTTPServer
from itertools import chain, groupby, islice
from operator import attrgetter
from typing import Any

from minimr.master_rpc import MasterRpcClient, PeerWorkerClient
from minimr.tasks import FileInfo, IMDFileInfo, WorkerStatus
from minimr.types import KeyValue, decode_pairs, encode_pairs, sort_by_key
from minimr.util import ihash
from minimr.worker_rpc import _make_server

_log = logging.getLogger(__name__)

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"

MapFn = Callable[[str, str], "list[KeyValue]"]
ReduceFn = Callable[[str, "list[str]"], str]


def _read_lines(path: str, start: int, stop: int) -> str:
    """Return lines ``start`` to ``stop`` (exclusive), each ended by a newline."""
    parts = []
    with open(path, encoding=_ENCODING, errors=_ERRORS, newline="") as handle:
        for line in islice(handle, max(start, 0), max(stop, 0)):
            line = line[:-1] if line.endswith("\n") else line
            line = line[:-1] if line.endswith("\r") else line
            parts.append(line + "\n")
    return "".join(parts)


class Worker:
    """Executes tasks handed out by the master."""

    def __init__(
        self,
        n_reduce: int,
        master_address: str,
        map_fn: MapFn | None = None,
        reduce_fn: ReduceFn | None = None,
        *,
        master_client: Any = None,
        peer_client: Any = None,
        output_dir: str | os.PathLike[str] = "output",
    ) -> None:
        if n_reduce < 1:
            raise ValueError("at least one reduce task is required")
        self.n_reduce = n_reduce
        self.master_address = master_address
        self.map_fn = map_fn
        self.reduce_fn = reduce_fn
        self.master_client = master_client if master_client is not None else MasterRpcClient()
        self.peer_client = peer_client if peer_client is not None else PeerWorkerClient()
        self.output_dir = os.fspath(output_dir)
        self.id = 0
        self.uuid = str(_uuid.uuid4())
        self._status = WorkerStatus.IDLE
        self._lock = threading.Lock()
        self._ended = threading.Event()

    def health(self) -> WorkerStatus:
        """Return the worker's current status."""
        with self._lock:
            return self._status

    def end(self) -> None:
        """Signal that the master asked this worker to terminate."""
        _log.debug("[Worker] Worker [UUID: %s, ID: %s] is terminating", self.uuid, self.id)
        self._ended.set()

    def wait_for_end(self, timeout: float | None = None) -> bool:
        """Block until :meth:`end` is called; False if ``timeout`` passed first."""
        return self._ended.wait(timeout)

    @contextlib.contextmanager
    def _busy(self) -> Iterator[None]:
        with self._lock:
            self._status = WorkerStatus.BUSY
        try:
            yield
        finally:
            with self._lock:
                self._status = WorkerStatus.IDLE

    def assign_map_task(self, files: Iterable[FileInfo]) -> bool:
        """Map the given file slices, write one intermediate file per bucket, report them.

        Raises OSError when an input cannot be read or an output written.
        """
        map_fn = self.map_fn
        if map_fn is None:
            raise RuntimeError("no map function loaded")
        slices = list(files)
        _log.info("[Worker] Worker %s start doing map task", self.id)
        with self._busy():
            with ThreadPoolExecutor() as pool:
                results = list(
                    pool.map(
                        lambda info: map_fn(
                            info.file_name, _read_lines(info.file_name, info.start, info.stop)
                        ),
                        slices,
                    )
                )
            buckets: list[list[KeyValue]] = [[] for _ in range(self.n_reduce)]
            for kv in chain.from_iterable(results):
                buckets[ihash(kv.key) % self.n_reduce].append(kv)

            names = self._write_intermediates(buckets)
            updated = self.master_client.update_imd_files(
                self.uuid, names, self.id, self.master_address
            )
            if updated:
                _log.info(
                    "[Worker] Update intermediate files successfully [filenames: %s, worker-id: %s]",
                    names,
                    self.id,
                )
            else:
                _log.info(
                    "[Worker] Update intermediate files failed because worker is in "
                    "WORKER_UNKNOWN before!"
                )
        return True

    def assign_reduce_task(self, files: Iterable[IMDFileInfo]) -> bool:
        """Fetch a bucket's intermediate files, reduce each key, write mr-out-<bucket>.

        Returns False when a peer could not supply its file. Raises ValueError
        when no files are given.
        """
        reduce_fn = self.reduce_fn
        if reduce_fn is None:
            raise RuntimeError("no reduce function loaded")
        sources = list(files)
        if not sources:
            raise ValueError("no intermediate files to reduce")
        _log.info("[Worker] Worker %s start doing reduce task", self.id)
        with self._busy():
            with ThreadPoolExecutor() as pool:
                results = list(pool.map(self._fetch, sources))
            if any(result is None for result in results):
                _log.warning("The worker contains file intermediate has some problem")
                return False

            pairs = sort_by_key(chain.from_iterable(r for r in results if r is not None))
            lines = [
                f"{key} {reduce_fn(key, [kv.value for kv in group])}\n"
                for key, group in groupby(pairs, key=attrgetter("key"))
            ]
            bucket = sources[0].file_name.rsplit("-", 1)[-1]
            self._atomic_write(os.path.join(self.output_dir, f"mr-out-{bucket}"), "".join(lines))
        return True

    def get_imd_file(self, filename: str | os.PathLike[str]) -> list[KeyValue]:
        """Read one of this worker's intermediate files.

        Raises OSError when it cannot be opened and ValueError when it is malformed.
        """
        with open(filename, encoding=_ENCODING, errors=_ERRORS) as handle:
            return decode_pairs(handle.read())

    def _fetch(self, info: IMDFileInfo) -> list[KeyValue] | None:
        try:
            return self.peer_client.read_imd_file(info.file_name, info.worker_ip)
        except (OSError, ValueError, RuntimeError) as exc:
            _log.warning("Reading %s from %s failed: %s", info.file_name, info.worker_ip, exc)
            return None

    def _write_intermediates(self, buckets: list[list[KeyValue]]) -> list[str]:
        def write(indexed: tuple[int, list[KeyValue]]) -> str:
            bucket, pairs = indexed
            path = os.path.join(self.output_dir, f"mr-imd-{self.id}-{bucket}")
            self._atomic_write(path, encode_pairs(pairs) if pairs else "null")
            return path

        with ThreadPoolExecutor() as pool:
            return list(pool.map(write, enumerate(buckets)))

    def _atomic_write(self, path: str, text: str) -> None:
        temp_dir = os.path.join(self.output_dir, "temp")
        os.makedirs(temp_dir, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding=_ENCODING,
            errors=_ERRORS,
            newline="",
            dir=temp_dir,
            prefix="mr-temp-",
            delete=False,
        ) as handle:
            temp_name = handle.name
            try:
                handle.write(text)
            except BaseException:
                handle.close()
                os.remove(temp_name)
                raise
        try:
            os.replace(temp_name, path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.remove(temp_name)
            raise


def make_worker_server(worker: Worker, address: str) -> ThreadingHTTPServer:
    """Build (but do not start) the server the master and peers call on this worker."""

    def health(payload: dict[str, Any]) -> dict[str, Any]:
        return {"status": int(worker.health())}

    def end(payload: dict[str, Any]) -> dict[str, Any]:
        worker.end()
        return {}

    def assign_map(payload: dict[str, Any]) -> dict[str, Any]:
        files = [
            FileInfo(str(item["file_name"]), int(item["from"]), int(item["to"]))
            for item in payload.get("file_info") or []
        ]
        return {"uuid": worker.uuid, "result": worker.assign_map_task(files)}

    def assign_reduce(payload: dict[str, Any]) -> dict[str, Any]:
        files = [
            IMDFileInfo(str(item["file_name"]), str(item["worker_ip"]))
            for item in payload.get("file_info") or []
        ]
        return {"uuid": worker.uuid, "result": worker.assign_reduce_task(files)}

    def get_file(payload: dict[str, Any]) -> dict[str, Any]:
        pairs = worker.get_imd_file(str(payload["file_name"]))
        return {"key_values": [{"key": kv.key, "value": kv.value} for kv in pairs]}

    return _make_server(
        address,
        {
            "Health": health,
            "End": end,
            "AssignMapTask": assign_map,
            "AssignReduceTask": assign_reduce,
            "GetIMDFile": get_file,
        },
    )