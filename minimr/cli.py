"""Command-line entry points for the master and worker processes."""

from __future__ import annotations

import argparse
import glob
import logging
import sys
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from minimr.master import Master, make_master_server
from minimr.master_rpc import MasterRpcError
from minimr.plugins import PluginError, load_app
from minimr.worker import Worker, make_worker_server

_log = logging.getLogger(__name__)

_HOST = "127.0.0.1"
_SHUTDOWN_GRACE = 0.5


@dataclass(frozen=True)
class Options:
    """Settings shared by the master and worker commands."""

    files: list[str] = field(default_factory=list)
    plugin: str = ""
    master_address: str = f"{_HOST}:40000"
    worker_address: str = f"{_HOST}:40001"
    n_reduce: int = 1
    total_workers: int = 4


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mr",
        description="MapReduce is an easy-to-use parallel-computing framework.",
    )
    parser.add_argument("args", nargs="*", help=argparse.SUPPRESS)
    parser.add_argument(
        "-i", "--input", action="append", required=True, metavar="FILES",
        help="Input files (comma separated, glob patterns allowed)",
    )
    parser.add_argument("-p", "--plugin", required=True, help="Application to run")
    parser.add_argument("-r", "--reduce", type=int, default=1, help="Number of Reducers")
    parser.add_argument(
        "-w", "--worker", type=int, default=4,
        help="Number of Workers (for master node); ID of worker (for worker node)",
    )
    parser.add_argument("-m", "--port", type=int, default=40000, help="Master port number")
    parser.add_argument(
        "-P", "--port-worker", type=int, default=40001, help="Worker port number"
    )
    return parser


def _expand_inputs(values: Sequence[str]) -> list[str]:
    patterns = [part for value in values if value for part in value.split(",")]
    return [path for pattern in patterns for path in sorted(glob.glob(pattern))]


def _resolve_plugin(name: str) -> str:
    matches = sorted(glob.glob(name)) if name else []
    if matches:
        return matches[0]
    try:
        load_app(name)
    except PluginError:
        raise FileNotFoundError(f"No such file: {name!r}") from None
    return name


def parse_args(argv: Sequence[str] | None = None) -> Options:
    """Parse command-line arguments, expanding input globs and resolving the plugin.

    Exits through SystemExit on malformed flags; raises FileNotFoundError when
    the plugin matches neither a file nor a bundled application.
    """
    namespace = _build_parser().parse_args(list(sys.argv[1:] if argv is None else argv))
    return Options(
        files=_expand_inputs(namespace.input),
        plugin=_resolve_plugin(namespace.plugin),
        master_address=f"{_HOST}:{namespace.port}",
        worker_address=f"{_HOST}:{namespace.port_worker}",
        n_reduce=namespace.reduce,
        total_workers=namespace.worker,
    )


def _configure_logging() -> None:
    logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(message)s")


def _parse_or_report(argv: Sequence[str] | None) -> Options | None:
    try:
        return parse_args(argv)
    except FileNotFoundError as exc:
        print(exc, file=sys.stderr)
        return None


def master_main(argv: Sequence[str] | None = None) -> int:
    """Run the master: wait for workers, run both phases, then stop the workers."""
    _configure_logging()
    options = _parse_or_report(argv)
    if options is None:
        return 1
    try:
        master = Master(options.total_workers, options.n_reduce)
        server = make_master_server(master, options.master_address)
    except (OSError, ValueError) as exc:
        _log.error("Cannot listen on ip: %s (%s)", options.master_address, exc)
        return 1

    threading.Thread(target=server.serve_forever, daemon=True).start()
    _log.info("[Master] Master server start on %s", options.master_address)
    try:
        master.wait_for_enough_workers()
        threading.Thread(target=master.check_period_health, daemon=True).start()
        master.distribute_workload(options.files)
        master.distribute_map_tasks()
        master.distribute_reduce_tasks()
        master.end_workers()
    finally:
        server.shutdown()
        server.server_close()
    return 0


def worker_main(argv: Sequence[str] | None = None) -> int:
    """Run a worker: serve requests, register with the master, wait to be ended."""
    _configure_logging()
    options = _parse_or_report(argv)
    if options is None:
        return 1
    try:
        worker = Worker(options.n_reduce, options.master_address)
        server = make_worker_server(worker, options.worker_address)
    except (OSError, ValueError) as exc:
        _log.error("Worker [IP: %s] cannot serve: %s", options.worker_address, exc)
        return 1

    threading.Thread(target=server.serve_forever, daemon=True).start()
    _log.info("[Worker] Worker server start on %s", options.worker_address)
    try:
        try:
            worker.map_fn, worker.reduce_fn = load_app(options.plugin)
        except PluginError as exc:
            _log.error("%s", exc)
            return 1
        try:
            worker.id = worker.master_client.register_worker(
                options.worker_address, worker.uuid, options.master_address
            )
        except (MasterRpcError, ValueError) as exc:
            _log.error("Register worker with master failed with reason: %s", exc)
            return 1

        worker.wait_for_end()
        # Let the reply to the master's End call go out before stopping.
        time.sleep(_SHUTDOWN_GRACE)
    finally:
        server.shutdown()
        server.server_close()
    return 0