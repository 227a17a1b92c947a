"""Client the master uses to reach workers, and the JSON-over-HTTP transport.

Every call is an HTTP ``POST /<Method>`` whose body and reply are JSON
objects. A handler failure is answered with a non-200 status and an
``{"error": "..."}`` body.
"""

from __future__ import annotations

import http.client
import json
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from minimr.tasks import IMDFileInfo, MapTaskInfo, ReduceTaskInfo, WorkerStatus

_log = logging.getLogger(__name__)

_Route = Callable[[dict[str, Any]], dict[str, Any]]


class _RemoteError(RuntimeError):
    """The peer received the call but reported a failure."""


def _split_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts; raises ValueError when malformed."""
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ValueError(f"address must look like host:port, got {address!r}")
    try:
        number = int(port)
    except ValueError:
        raise ValueError(f"invalid port in address {address!r}") from None
    if not 0 <= number <= 65535:
        raise ValueError(f"port out of range in address {address!r}")
    return host.strip("[]"), number


class _Connection:
    """A handle on one peer; each call opens a fresh HTTP exchange."""

    def __init__(self, host: str, port: int) -> None:
        self.host = host
        self.port = port

    def call(
        self, method: str, payload: Mapping[str, Any] | None = None, timeout: float = 10.0
    ) -> dict[str, Any]:
        """Invoke ``method`` on the peer and return its reply object.

        Raises OSError when the peer cannot be reached and RuntimeError when
        the peer reports a failure or answers with something malformed.
        """
        body = json.dumps(dict(payload or {})).encode("utf-8")
        conn = http.client.HTTPConnection(self.host, self.port, timeout=timeout)
        try:
            conn.request(
                "POST", f"/{method}", body=body, headers={"Content-Type": "application/json"}
            )
            response = conn.getresponse()
            raw = response.read()
        except http.client.HTTPException as exc:
            raise ConnectionError(f"broken reply from {self.host}:{self.port}: {exc}") from exc
        finally:
            conn.close()

        try:
            data = json.loads(raw) if raw else {}
        except ValueError as exc:
            raise _RemoteError(f"malformed reply: {exc}") from exc
        if response.status != 200:
            message = data.get("error") if isinstance(data, dict) else None
            raise _RemoteError(message or f"HTTP {response.status}")
        if not isinstance(data, dict):
            raise _RemoteError("reply must be a JSON object")
        return data


def _make_server(address: str, routes: Mapping[str, _Route]) -> ThreadingHTTPServer:
    """Build (but do not start) a server dispatching ``POST /<name>`` to ``routes``."""
    host, port = _split_address(address)
    table = dict(routes)

    class _Handler(BaseHTTPRequestHandler):
        def do_POST(self) -> None:  # noqa: N802 - name fixed by BaseHTTPRequestHandler
            method = self.path.lstrip("/")
            route = table.get(method)
            length = int(self.headers.get("Content-Length") or 0)
            raw = self.rfile.read(length) if length else b""
            if route is None:
                self._reply(404, {"error": f"unknown method {method}"})
                return
            try:
                payload = json.loads(raw) if raw else {}
                if not isinstance(payload, dict):
                    raise ValueError("request must be a JSON object")
            except ValueError as exc:
                self._reply(400, {"error": str(exc)})
                return
            try:
                result = route(payload)
            except Exception as exc:  # reported back to the caller
                _log.warning("%s failed: %s", method, exc)
                self._reply(500, {"error": str(exc) or type(exc).__name__})
                return
            self._reply(200, result)

        def _reply(self, status: int, body: Mapping[str, Any]) -> None:
            data = json.dumps(dict(body)).encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

        def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
            _log.debug("%s - %s", self.address_string(), format % args)

    server = ThreadingHTTPServer((host, port), _Handler)
    server.daemon_threads = True
    return server


class WorkerRpcClient:
    """Calls the master makes on workers: health checks, task assignment, shutdown."""

    def __init__(
        self,
        *,
        call_timeout: float = 10.0,
        health_timeout: float = 5.0,
        health_attempts: int = 3,
        retry_delay: float = 0.5,
    ) -> None:
        self.call_timeout = call_timeout
        self.health_timeout = health_timeout
        self.health_attempts = health_attempts
        self.retry_delay = retry_delay

    def connect(self, worker_address: str) -> _Connection | None:
        """Return a handle on the worker, or None when the address is malformed."""
        try:
            host, port = _split_address(worker_address)
        except ValueError as exc:
            _log.warning("%s", exc)
            return None
        return _Connection(host, port)

    def check_health(self, worker_address: str) -> WorkerStatus:
        """Ask the worker for its status, retrying; UNKNOWN when it never answers."""
        _log.debug("[Master] Start check health worker ip: %s", worker_address)
        conn = self.connect(worker_address)
        if conn is None:
            return WorkerStatus.UNKNOWN
        for attempt in range(1, self.health_attempts + 1):
            try:
                reply = conn.call("Health", {}, timeout=self.health_timeout)
                return WorkerStatus(int(reply["status"]))
            except (OSError, _RemoteError, KeyError, TypeError, ValueError) as exc:
                _log.debug("[Master] Health attempt %d on %s failed: %s", attempt, worker_address, exc)
            if attempt < self.health_attempts:
                time.sleep(self.retry_delay)
        _log.debug(
            "[Master] End check health worker ip: %s, worker status: %s",
            worker_address,
            WorkerStatus.UNKNOWN.name,
        )
        return WorkerStatus.UNKNOWN

    def _invoke(
        self, worker_address: str, method: str, payload: Mapping[str, Any], what: str
    ) -> dict[str, Any] | None:
        conn = self.connect(worker_address)
        if conn is None:
            return None
        try:
            return conn.call(method, payload, timeout=self.call_timeout)
        except (OSError, _RemoteError) as exc:
            _log.warning("[Master]: Error from %s: %s", what, exc)
            return None

    def assign_map_task(self, task: MapTaskInfo, worker_address: str) -> bool:
        """Have the worker run a map task; True when it reports success."""
        _log.debug("[Master] Start assigned map task for worker: %s", worker_address)
        reply = self._invoke(worker_address, "AssignMapTask", task.to_message(), "map task")
        return reply is not None and reply.get("result") is True

    def assign_reduce_task(self, files: Iterable[IMDFileInfo], worker_address: str) -> bool:
        """Have the worker reduce the given intermediate files; True on success."""
        _log.debug("[Master] Start assigned reduce task for worker: %s", worker_address)
        payload = {"file_info": ReduceTaskInfo(files=list(files)).to_message()}
        reply = self._invoke(worker_address, "AssignReduceTask", payload, "reduce task")
        return reply is not None and reply.get("result") is True

    def end(self, worker_address: str) -> bool:
        """Tell the worker to shut down; True when it acknowledged."""
        _log.debug("[Master] Start end worker: %s", worker_address)
        return self._invoke(worker_address, "End", {}, "end") is not None