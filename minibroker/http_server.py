"""A minimal threaded HTTP/1.x endpoint that answers every request with an empty 200."""

from __future__ import annotations

import logging
import os
import queue
import socket
import threading
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)

OK_RESPONSE = b"HTTP/1.1 200 OK\r\nContent-Length: 0\r\n\r\n"
SERVICE_UNAVAILABLE_RESPONSE = b"HTTP/1.1 503 Service Unavailable\r\n\r\n"

_POLL_INTERVAL = 0.1


class RequestCounter:
    """A thread-safe count of the requests answered."""

    def __init__(self) -> None:
        self._count = 0
        self._lock = threading.Lock()

    def increment(self) -> None:
        """Add one to the count."""
        with self._lock:
            self._count += 1

    def value(self) -> int:
        """Return the current count."""
        with self._lock:
            return self._count


def extract_request(lines: Iterator[str]) -> list[str]:
    """Take lines up to, not including, the first empty line or the end of input."""
    request: list[str] = []
    for line in lines:
        if not line:
            break
        request.append(line)
    return request


def wants_keep_alive(request: Iterable[str]) -> bool:
    """Decide from the request lines whether the connection should stay open.

    HTTP/1.1 and ``Connection: keep-alive`` keep it open, ``Connection: close``
    closes it; later lines override earlier ones. HTTP/1.0 defaults to close.
    """
    keep_alive = False
    for line in request:
        lower = line.lower()
        if "http/1.1" in lower or lower == "connection: keep-alive":
            keep_alive = True
        elif lower == "connection: close":
            keep_alive = False
    return keep_alive


def _read_lines(reader, thread_id: int) -> Iterator[str]:
    while True:
        try:
            raw = reader.readline()
        except OSError:
            logger.info(
                "Worker thread %d detected connection closed by client", thread_id
            )
            yield ""
            return
        if not raw:
            return
        if raw.endswith(b"\n"):
            raw = raw[:-1]
            if raw.endswith(b"\r"):
                raw = raw[:-1]
        yield raw.decode("utf-8", errors="replace")


def handle_connection(
    counter: RequestCounter,
    thread_id: int,
    stream: socket.socket,
    stop_event: threading.Event,
) -> None:
    """Answer requests on one connection until it is closed or not kept alive."""
    with stream.makefile("rb") as reader, stream.makefile("wb") as writer:
        lines = _read_lines(reader, thread_id)
        keep_alive = True
        while keep_alive:
            request = extract_request(lines)
            if not request:
                logger.info(
                    "Worker thread %d closing connection because client closed their end",
                    thread_id,
                )
                return
            keep_alive = (not stop_event.is_set()) and wants_keep_alive(request)

            try:
                writer.write(OK_RESPONSE)
                writer.flush()
            except OSError as err:
                logger.warning(
                    "Worker thread %d failed to write response. %s", thread_id, err
                )
                return

            counter.increment()
    logger.info("Worker thread %d closing the connection", thread_id)


def _send_service_unavailable(stream: socket.socket) -> None:
    logger.info("Sending service unavailable response")
    try:
        stream.sendall(SERVICE_UNAVAILABLE_RESPONSE)
    except OSError:
        pass


def _process_connections(
    counter: RequestCounter,
    thread_id: int,
    connections: "queue.Queue[socket.socket]",
    stop_event: threading.Event,
) -> None:
    while not stop_event.is_set():
        try:
            stream = connections.get(timeout=_POLL_INTERVAL)
        except queue.Empty:
            continue
        try:
            handle_connection(counter, thread_id, stream, stop_event)
        finally:
            stream.close()
    logger.info(
        "Worker thread %d terminating because application is exiting", thread_id
    )


def run(
    counter: RequestCounter,
    host: str,
    port: int,
    stop_event: threading.Event,
) -> None:
    """Listen on host:port and spread connections over one worker per CPU.

    Returns once ``stop_event`` is set and all workers have finished.
    """
    concurrency = os.cpu_count() or 1
    with socket.create_server((host, port)) as listener:
        listener.settimeout(_POLL_INTERVAL)

        queues: list[queue.Queue[socket.socket]] = []
        workers: list[threading.Thread] = []
        for index in range(concurrency):
            connections: queue.Queue[socket.socket] = queue.Queue()
            worker = threading.Thread(
                target=_process_connections,
                args=(counter, index + 1, connections, stop_event),
                name=f"http-worker-{index + 1}",
                daemon=True,
            )
            worker.start()
            queues.append(connections)
            workers.append(worker)

        thread_index = 0
        while not stop_event.is_set():
            try:
                stream, _address = listener.accept()
            except socket.timeout:
                continue
            except OSError as err:
                logger.error("Error accepting connection. %s", err)
                break
            if not workers[thread_index].is_alive():
                _send_service_unavailable(stream)
                stream.close()
                logger.error("Failed to queue request to worker thread %d", thread_index + 1)
                break
            queues[thread_index].put(stream)
            thread_index = (thread_index + 1) % concurrency

        logger.info("Waiting for worker threads to terminate")
        for worker in workers:
            worker.join()
        logger.info("All worker threads have terminated")