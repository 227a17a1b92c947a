import glob
import socket
import threading
import time

import pytest

from minimr.apps import wc
from minimr.cli import Options, master_main, parse_args, worker_main
from minimr.sequential import run_sequential


def _free_ports(count):
    sockets = []
    try:
        for _ in range(count):
            sock = socket.socket()
            sock.bind(("127.0.0.1", 0))
            sockets.append(sock)
        return [sock.getsockname()[1] for sock in sockets]
    finally:
        for sock in sockets:
            sock.close()


def test_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "in.txt").write_text("x\n")
    options = parse_args(["mr", "-i", "in.txt", "-p", "wc"])
    assert options == Options(
        files=["in.txt"],
        plugin="wc",
        master_address="127.0.0.1:40000",
        worker_address="127.0.0.1:40001",
        n_reduce=1,
        total_workers=4,
    )


def test_flags_override_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "in.txt").write_text("x\n")
    options = parse_args(
        ["-i", "in.txt", "-p", "wc", "-r", "3", "-w", "2", "-m", "5000", "-P", "5001"]
    )
    assert options.n_reduce == 3
    assert options.total_workers == 2
    assert options.master_address.endswith(":5000")
    assert options.worker_address.endswith(":5001")


def test_inputs_glob_comma_and_repeat(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ["pg-b.txt", "pg-a.txt", "other.txt", "extra.txt"]:
        (tmp_path / name).write_text("word\n")
    options = parse_args(["-i", "pg-*.txt,other.txt", "-i", "extra.txt", "-p", "wc"])
    assert options.files == ["pg-a.txt", "pg-b.txt", "other.txt", "extra.txt"]


def test_unmatched_inputs_are_dropped(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    options = parse_args(["-i", "missing-*.txt", "-p", "wc"])
    assert options.files == []


def test_plugin_path_is_globbed(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "wc.so").write_text("")
    (tmp_path / "in.txt").write_text("x\n")
    options = parse_args(["-i", "in.txt", "-p", "*.so"])
    assert options.plugin == "wc.so"


def test_unknown_plugin_raises(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(FileNotFoundError):
        parse_args(["-i", "in.txt", "-p", "nosuchapp"])


@pytest.mark.parametrize(
    "argv",
    [
        ["-p", "wc"],
        ["-i", "in.txt"],
        ["-i", "in.txt", "-p", "wc", "-r", "many"],
    ],
)
def test_bad_arguments_exit(argv):
    with pytest.raises(SystemExit):
        parse_args(argv)


def test_master_main_unknown_plugin_fails(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert master_main(["-i", "in.txt", "-p", "nosuchapp"]) == 1


def test_master_main_port_in_use_fails(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with socket.socket() as busy:
        busy.bind(("127.0.0.1", 0))
        busy.listen()
        port = busy.getsockname()[1]
        assert master_main(["-i", "in.txt", "-p", "wc", "-w", "1", "-m", str(port)]) == 1


def test_worker_main_without_master_fails(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    master_port, worker_port = _free_ports(2)
    argv = ["-i", "in.txt", "-p", "wc", "-m", str(master_port), "-P", str(worker_port)]
    assert worker_main(argv) == 1


def test_cluster_matches_sequential_run(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "pg-a.txt").write_text("the quick brown fox\njumps over the lazy dog\nthe end\n")
    (tmp_path / "pg-b.txt").write_text("a fox, a dog;\nand the cat\n")
    master_port, worker_port = _free_ports(2)
    common = ["mr", "-i", "pg-*.txt", "-p", "wc", "-r", "1", "-w", "1", "-m", str(master_port)]
    results = {}

    def run(name, func, argv):
        results[name] = func(argv)

    master_thread = threading.Thread(
        target=run, args=("master", master_main, common), daemon=True
    )
    master_thread.start()
    time.sleep(0.3)
    worker_thread = threading.Thread(
        target=run,
        args=("worker", worker_main, common + ["-P", str(worker_port)]),
        daemon=True,
    )
    worker_thread.start()
    worker_thread.join(60)
    master_thread.join(60)

    assert results == {"master": 0, "worker": 0}
    expected_path = tmp_path / "expected.txt"
    run_sequential(wc.map_fn, wc.reduce_fn, sorted(glob.glob("pg-*.txt")), expected_path)
    assert (tmp_path / "output" / "mr-out-0").read_text() == expected_path.read_text()