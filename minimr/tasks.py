"""Bookkeeping records the master keeps for map tasks, reduce tasks and workers."""

from __future__ import annotations

import threading
import uuid as _uuid
from dataclasses import dataclass, field
from enum import IntEnum


class TaskState(IntEnum):
    """Lifecycle of a map or reduce task."""

    TO_DO = 0
    IN_PROGRESS = 1
    COMPLETED = 2


@dataclass
class FileInfo:
    """A slice of an input file: lines ``start`` (inclusive) to ``stop`` (exclusive)."""

    file_name: str
    start: int
    stop: int


@dataclass
class MapTaskInfo:
    """A map task: the file slices one worker processes in a single request."""

    state: TaskState = TaskState.TO_DO
    files: list[FileInfo] = field(default_factory=list)
    uuid: str = field(default_factory=lambda: str(_uuid.uuid4()))

    def to_message(self) -> dict[str, list[dict[str, object]]]:
        """Build the request body sent to a worker to run this task."""
        return {
            "file_info": [
                {"file_name": info.file_name, "from": info.start, "to": info.stop}
                for info in self.files
            ]
        }


@dataclass
class IMDFileInfo:
    """An intermediate file and the address of the worker that holds it."""

    file_name: str
    worker_ip: str


@dataclass
class ReduceTaskInfo:
    """A reduce task: the intermediate files belonging to one bucket."""

    state: TaskState = TaskState.TO_DO
    files: list[IMDFileInfo] = field(default_factory=list)

    def to_message(self) -> list[dict[str, str]]:
        """Build the file list sent to a worker to run this task."""
        return [{"file_name": f.file_name, "worker_ip": f.worker_ip} for f in self.files]


def new_map_tasks(count: int) -> list[MapTaskInfo]:
    """Create ``count`` empty map tasks, one per worker."""
    return [MapTaskInfo() for _ in range(count)]


def new_reduce_tasks(count: int) -> list[ReduceTaskInfo]:
    """Create ``count`` empty reduce tasks, one per bucket."""
    return [ReduceTaskInfo() for _ in range(count)]


class WorkerStatus(IntEnum):
    """Health of a worker as seen by the master; UNKNOWN means broken."""

    UNKNOWN = 0
    IDLE = 1
    BUSY = 2


@dataclass(eq=False)
class WorkerInfo:
    """A registered worker; its status may be changed from several threads."""

    worker_ip: str
    uuid: str
    status: WorkerStatus = WorkerStatus.IDLE
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def update_status(self, status: WorkerStatus) -> None:
        """Set the worker's status."""
        with self._lock:
            self.status = WorkerStatus(status)

    def is_alive(self) -> bool:
        """True unless the worker is known to be broken."""
        with self._lock:
            return self.status != WorkerStatus.UNKNOWN

    def is_available(self) -> bool:
        """True when the worker is idle and can take a task."""
        with self._lock:
            return self.status == WorkerStatus.IDLE

    def is_broken(self) -> bool:
        """True when the worker's status is unknown."""
        with self._lock:
            return self.status == WorkerStatus.UNKNOWN