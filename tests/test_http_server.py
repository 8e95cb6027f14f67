import socket
import threading
import time

import pytest

from minibroker.http_server import (
    OK_RESPONSE,
    RequestCounter,
    extract_request,
    handle_connection,
    run,
    wants_keep_alive,
)


def _read_all(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        data = sock.recv(4096)
        if not data:
            break
        chunks.append(data)
    return b"".join(chunks)


def test_counter_increments():
    counter = RequestCounter()
    for _ in range(5):
        counter.increment()
    assert counter.value() == 5


def test_counter_is_thread_safe():
    counter = RequestCounter()

    def bump():
        for _ in range(1000):
            counter.increment()

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert counter.value() == 4000


def test_extract_request_stops_at_blank_line():
    lines = iter(["GET / HTTP/1.1", "Host: x", "", "GET /b HTTP/1.1", ""])
    assert extract_request(lines) == ["GET / HTTP/1.1", "Host: x"]
    assert extract_request(lines) == ["GET /b HTTP/1.1"]
    assert extract_request(lines) == []


def test_extract_request_stops_at_end():
    assert extract_request(iter(["a", "b"])) == ["a", "b"]


@pytest.mark.parametrize(
    "request_lines, expected",
    [
        (["GET / HTTP/1.1"], True),
        (["GET / HTTP/1.0"], False),
        (["GET / HTTP/1.0", "Connection: keep-alive"], True),
        (["GET / HTTP/1.0", "connection: Keep-Alive"], True),
        (["GET / HTTP/1.1", "Connection: close"], False),
        (["GET / HTTP/1.0", "Connection: close"], False),
    ],
)
def test_wants_keep_alive(request_lines, expected):
    assert wants_keep_alive(request_lines) is expected


def test_handle_connection_http10_single_request():
    server, client = socket.socketpair()
    client.sendall(b"GET / HTTP/1.0\r\nHost: x\r\n\r\nGET / HTTP/1.0\r\n\r\n")
    counter = RequestCounter()
    handle_connection(counter, 1, server, threading.Event())
    server.close()
    assert _read_all(client) == OK_RESPONSE
    assert counter.value() == 1
    client.close()


def test_handle_connection_keep_alive_serves_all():
    server, client = socket.socketpair()
    client.sendall(b"GET / HTTP/1.1\r\n\r\nGET /x HTTP/1.1\r\n\r\n")
    client.shutdown(socket.SHUT_WR)
    counter = RequestCounter()
    handle_connection(counter, 1, server, threading.Event())
    server.close()
    assert _read_all(client) == OK_RESPONSE * 2
    assert counter.value() == 2
    client.close()


def test_handle_connection_stopping_closes_after_one():
    server, client = socket.socketpair()
    client.sendall(b"GET / HTTP/1.1\r\n\r\nGET /x HTTP/1.1\r\n\r\n")
    stop = threading.Event()
    stop.set()
    counter = RequestCounter()
    handle_connection(counter, 1, server, stop)
    server.close()
    assert _read_all(client) == OK_RESPONSE
    assert counter.value() == 1
    client.close()


def test_handle_connection_empty_input():
    server, client = socket.socketpair()
    client.shutdown(socket.SHUT_WR)
    counter = RequestCounter()
    handle_connection(counter, 1, server, threading.Event())
    server.close()
    assert _read_all(client) == b""
    assert counter.value() == 0
    client.close()


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_run_answers_and_stops():
    port = _free_port()
    counter = RequestCounter()
    stop = threading.Event()
    thread = threading.Thread(target=run, args=(counter, "127.0.0.1", port, stop))
    thread.start()
    try:
        deadline = time.monotonic() + 5
        while True:
            try:
                client = socket.create_connection(("127.0.0.1", port), timeout=5)
                break
            except OSError:
                if time.monotonic() > deadline:
                    raise
                time.sleep(0.05)
        with client:
            client.sendall(b"GET / HTTP/1.0\r\n\r\n")
            assert _read_all(client) == OK_RESPONSE
    finally:
        stop.set()
        thread.join(timeout=5)
    assert not thread.is_alive()
    assert counter.value() == 1