"""The master: tracks workers, splits the input and drives both phases."""

from __future__ import annotations

import logging
import os
import queue
import re
import threading
import time
from collections.abc import Callable, Iterable
from http.server import ThreadingHTTPServer
from typing import Any

from minimr.tasks import (
    FileInfo,
    IMDFileInfo,
    MapTaskInfo,
    ReduceTaskInfo,
    TaskState,
    WorkerInfo,
    WorkerStatus,
    new_map_tasks,
    new_reduce_tasks,
)
from minimr.util import line_count
from minimr.worker_rpc import WorkerRpcClient, _make_server

_log = logging.getLogger(__name__)

_BUCKET = re.compile(r"[+-]?[0-9]+")

DEFAULT_HEALTH_INTERVAL = 20.0


class Master:
    """Coordinator of a MapReduce job over a fixed number of workers."""

    def __init__(
        self,
        total_workers: int,
        n_reduce: int,
        worker_client: Any = None,
        *,
        poll_interval: float = 2.0,
    ) -> None:
        if total_workers < 1:
            raise ValueError("at least one worker is required")
        if n_reduce < 1:
            raise ValueError("at least one reduce task is required")
        self.total_workers = total_workers
        self.n_reduce = n_reduce
        self.workers: list[WorkerInfo] = []
        self.map_tasks: list[MapTaskInfo] = []
        self.reduce_tasks: list[ReduceTaskInfo] = new_reduce_tasks(n_reduce)
        self.worker_client = worker_client if worker_client is not None else WorkerRpcClient()
        self.poll_interval = poll_interval
        self._cond = threading.Condition()
        self._ended = threading.Event()

    def register_worker(self, worker_address: str, uuid: str) -> int:
        """Record a new worker and return its id (0, 1, ... in order of arrival)."""
        _log.info("[Worker IP: %s, Worker Identifier: %s] is registering", worker_address, uuid)
        with self._cond:
            self.workers.append(WorkerInfo(worker_address, uuid))
            worker_id = len(self.workers) - 1
            self._cond.notify_all()
        return worker_id

    def update_imd_files(self, worker_id: int, uuid: str, filenames: Iterable[str]) -> bool:
        """Attach a worker's intermediate files to their reduce tasks.

        The bucket of each file is the number after its last ``-``. Returns
        False when the worker is marked broken. Raises IndexError for an
        unknown worker or bucket and ValueError for a name without a number.
        """
        with self._cond:
            if not 0 <= worker_id < len(self.workers):
                raise IndexError(f"unknown worker id {worker_id}")
            worker = self.workers[worker_id]
        if worker.is_broken():
            return False

        address = self._service_discovery(uuid)
        entries = []
        for name in filenames:
            suffix = name.rsplit("-", 1)[-1]
            if not _BUCKET.fullmatch(suffix):
                _log.warning("File name contains reduce task id is not integer type")
                raise ValueError(f"no reduce task id at the end of {name!r}")
            bucket = int(suffix)
            if not 0 <= bucket < len(self.reduce_tasks):
                raise IndexError(f"reduce task {bucket} does not exist")
            entries.append((bucket, IMDFileInfo(name, address)))

        with self._cond:
            for bucket, info in entries:
                self.reduce_tasks[bucket].files.append(info)
        return True

    def wait_for_enough_workers(self) -> None:
        """Block until as many workers as expected have registered."""
        _log.debug("[Master] Wait for enough workers")
        with self._cond:
            self._cond.wait_for(lambda: len(self.workers) >= self.total_workers)
        _log.debug("[Master] Enough workers!")

    def distribute_workload(self, input_files: Iterable[str | os.PathLike[str]]) -> None:
        """Split every input file by lines into one slice per map task.

        Slices differ in size by at most one line; the earlier ones are larger.
        """
        _log.debug("[Master] Start distribute workload")
        self.map_tasks = new_map_tasks(self.total_workers)
        for path in input_files:
            name = os.fspath(path)
            base, extra = divmod(line_count(name), self.total_workers)
            start = 0
            for index, task in enumerate(self.map_tasks):
                size = base + (1 if index < extra else 0)
                task.files.append(FileInfo(name, start, start + size))
                start += size
        _log.debug("[Master] End distribute workload")

    def check_period_health(self, interval: float = DEFAULT_HEALTH_INTERVAL) -> None:
        """Poll every worker's health each ``interval`` seconds until the job ends."""
        while not self._ended.wait(interval):
            with self._cond:
                workers = list(self.workers)
            for worker in workers:
                status = self.worker_client.check_health(worker.worker_ip)
                _log.info("Health from worker %s is %s", worker.worker_ip, status)
                worker.update_status(status)
        _log.info("[Master] Shutdown background job check health")

    def distribute_map_tasks(self) -> None:
        """Run every map task, reassigning failed ones until all have completed."""
        _log.debug("[Master] Start assign map task to worker")
        self._run_phase(
            self.map_tasks,
            lambda task, address: self.worker_client.assign_map_task(task, address),
            "Map",
        )
        _log.debug("[Master]: End distributed map task and process map task!")

    def distribute_reduce_tasks(self) -> None:
        """Run every reduce task, reassigning failed ones until all have completed."""
        _log.debug("[Master] Start assign reduce task to worker")
        self._run_phase(
            self.reduce_tasks,
            lambda task, address: self.worker_client.assign_reduce_task(task.files, address),
            "Reduce",
        )
        _log.debug("[Master]: End distributed reduce task and process reduce task!")

    def end_workers(self) -> list[str]:
        """Stop health checks and tell every worker to shut down.

        Returns the addresses of the workers that did not acknowledge.
        """
        self._ended.set()
        with self._cond:
            workers = list(self.workers)
        failed = []
        for worker in workers:
            if self.worker_client.end(worker.worker_ip):
                _log.info("Worker %s shutdown successfully", worker.worker_ip)
            else:
                _log.warning("Worker %s shutdown failed", worker.worker_ip)
                failed.append(worker.worker_ip)
        return failed

    def _run_phase(
        self,
        tasks: list[Any],
        assign: Callable[[Any, str], bool],
        label: str,
    ) -> None:
        if not tasks:
            return
        outcomes: queue.Queue[tuple[bool, Any]] = queue.Queue()
        workers = self._available_workers(self.total_workers)
        for index, task in enumerate(tasks):
            self._launch(task, workers[index % len(workers)], assign, outcomes)

        completed = 0
        while completed < len(tasks):
            succeeded, task = outcomes.get()
            if succeeded:
                completed += 1
                continue
            _log.info("[Master] Re-execute %s Task", label)
            (worker,) = self._available_workers(1)
            self._launch(task, worker, assign, outcomes)

    def _launch(
        self,
        task: Any,
        worker: WorkerInfo,
        assign: Callable[[Any, str], bool],
        outcomes: queue.Queue[tuple[bool, Any]],
    ) -> None:
        task.state = TaskState.IN_PROGRESS
        worker.update_status(WorkerStatus.BUSY)

        def attempt() -> None:
            try:
                succeeded = bool(assign(task, worker.worker_ip))
            except Exception as exc:  # a failing call counts as a failed worker
                _log.warning("[Master] Task on %s raised: %s", worker.worker_ip, exc)
                succeeded = False
            if succeeded:
                task.state = TaskState.COMPLETED
                worker.update_status(WorkerStatus.IDLE)
            else:
                worker.update_status(WorkerStatus.UNKNOWN)
                task.state = TaskState.TO_DO
            outcomes.put((succeeded, task))

        threading.Thread(target=attempt, daemon=True).start()

    def _available_workers(self, count: int) -> list[WorkerInfo]:
        with self._cond:
            known = len(self.workers)
        _log.info("[Master] Finding available workers to execute %d / %d", count, known)
        while True:
            with self._cond:
                workers = list(self.workers)
            idle = [worker for worker in workers if worker.is_available()]
            if len(idle) >= count:
                _log.info("[Master] Finding enough available workers to execute!")
                return idle[:count]
            if workers and all(worker.is_broken() for worker in workers):
                _log.warning("Not enough worker to execute!")
            _log.info("[Master] Only %d/%d workers available, waiting...", len(idle), count)
            time.sleep(self.poll_interval)

    def _service_discovery(self, uuid: str) -> str:
        with self._cond:
            for worker in self.workers:
                if worker.uuid == uuid:
                    return worker.worker_ip
        return ""


def make_master_server(master: Master, address: str) -> ThreadingHTTPServer:
    """Build (but do not start) the server workers call to register and report files."""

    def register(payload: dict[str, Any]) -> dict[str, Any]:
        worker_id = master.register_worker(str(payload["worker_ip"]), str(payload["uuid"]))
        return {"is_success": True, "id": worker_id}

    def update(payload: dict[str, Any]) -> dict[str, Any]:
        filenames = [str(name) for name in payload.get("filenames") or []]
        result = master.update_imd_files(int(payload["id"]), str(payload["uuid"]), filenames)
        return {"result": result}

    return _make_server(address, {"RegisterWorker": register, "UpdateIMDFiles": update})