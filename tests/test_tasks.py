import threading

import pytest

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


def test_task_state_values_follow_declaration_order():
    assert [s.value for s in TaskState] == [0, 1, 2]
    assert TaskState(0) is TaskState.TO_DO


def test_worker_status_wire_values():
    assert WorkerStatus(0) is WorkerStatus.UNKNOWN
    assert WorkerStatus(1) is WorkerStatus.IDLE
    assert WorkerStatus(2) is WorkerStatus.BUSY


@pytest.mark.parametrize("count", [0, 1, 4])
def test_new_map_tasks(count):
    tasks = new_map_tasks(count)
    assert len(tasks) == count
    assert all(t.state is TaskState.TO_DO and t.files == [] for t in tasks)
    assert len({t.uuid for t in tasks}) == count


def test_map_tasks_do_not_share_file_lists():
    first, second = new_map_tasks(2)
    first.files.append(FileInfo("a.txt", 0, 3))
    assert second.files == []


def test_map_task_message_round_trip():
    task = MapTaskInfo(files=[FileInfo("a.txt", 0, 5), FileInfo("b.txt", 5, 9)])
    message = task.to_message()
    rebuilt = [FileInfo(d["file_name"], d["from"], d["to"]) for d in message["file_info"]]
    assert rebuilt == task.files


def test_empty_map_task_message():
    assert MapTaskInfo().to_message() == {"file_info": []}


@pytest.mark.parametrize("count", [0, 3])
def test_new_reduce_tasks(count):
    tasks = new_reduce_tasks(count)
    assert len(tasks) == count
    assert all(t.state is TaskState.TO_DO and t.files == [] for t in tasks)


def test_reduce_task_message():
    task = ReduceTaskInfo(
        files=[IMDFileInfo("output/mr-imd-0-1", "127.0.0.1:40001")]
    )
    assert task.to_message() == [
        {"file_name": "output/mr-imd-0-1", "worker_ip": "127.0.0.1:40001"}
    ]


def test_new_worker_is_idle_and_available():
    info = WorkerInfo("127.0.0.1:40001", "id-1")
    assert info.status is WorkerStatus.IDLE
    assert info.is_available()
    assert info.is_alive()
    assert not info.is_broken()


def test_busy_worker_is_alive_but_not_available():
    info = WorkerInfo("127.0.0.1:40001", "id-1")
    info.update_status(WorkerStatus.BUSY)
    assert not info.is_available()
    assert info.is_alive()
    assert not info.is_broken()


def test_unknown_worker_is_broken():
    info = WorkerInfo("127.0.0.1:40001", "id-1")
    info.update_status(WorkerStatus.UNKNOWN)
    assert info.is_broken()
    assert not info.is_alive()
    assert not info.is_available()


def test_update_status_accepts_plain_int():
    info = WorkerInfo("127.0.0.1:40001", "id-1")
    info.update_status(2)
    assert info.status is WorkerStatus.BUSY


def test_concurrent_updates_end_in_a_valid_state():
    info = WorkerInfo("127.0.0.1:40001", "id-1")
    statuses = [WorkerStatus.BUSY, WorkerStatus.IDLE, WorkerStatus.UNKNOWN] * 20
    threads = [threading.Thread(target=info.update_status, args=(s,)) for s in statuses]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert info.status in set(WorkerStatus)
    assert info.is_available() + info.is_broken() + (info.status is WorkerStatus.BUSY) == 1