import queue
import socket
import time

import pytest

from regulatix.network import TCPClient, TCPServer

TIMEOUT = 5.0


def _wait_for(predicate, timeout=TIMEOUT):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def server_events():
    return {
        "connected": queue.Queue(),
        "disconnected": queue.Queue(),
        "messages": queue.Queue(),
    }


@pytest.fixture
def server(server_events):
    srv = TCPServer(
        on_client_connected=server_events["connected"].put,
        on_client_disconnected=server_events["disconnected"].put,
        on_message=lambda msg, idx: server_events["messages"].put((msg, idx)),
    )
    assert srv.start_listening(0)
    yield srv
    srv.close()


@pytest.fixture
def client_events():
    return {
        "connected": queue.Queue(),
        "disconnected": queue.Queue(),
        "messages": queue.Queue(),
    }


@pytest.fixture
def client(client_events):
    cli = TCPClient(
        on_connected=lambda adr, port: client_events["connected"].put((adr, port)),
        on_disconnected=lambda: client_events["disconnected"].put(True),
        on_message=client_events["messages"].put,
    )
    yield cli
    cli.disconnect()


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_server_listens_on_chosen_port(server):
    assert server.is_listening
    assert server.port > 0
    assert server.client_count() == 0


def test_client_receives_greeting(server, client, client_events, server_events):
    client.connect("127.0.0.1", server.port)
    assert client.is_connected
    assert client_events["connected"].get(timeout=TIMEOUT) == ("127.0.0.1", server.port)
    assert client_events["messages"].get(timeout=TIMEOUT) == "Hello client 0"
    assert server_events["connected"].get(timeout=TIMEOUT) == "127.0.0.1"
    assert _wait_for(lambda: server.client_count() == 1)


def test_client_message_reaches_server(server, client, client_events, server_events):
    client.connect("127.0.0.1", server.port)
    client_events["messages"].get(timeout=TIMEOUT)
    client.send("setpoint")
    assert server_events["messages"].get(timeout=TIMEOUT) == ("setpoint", 0)
    assert client.is_connected
    assert server.client_count() == 1


def test_server_message_reaches_client(server, client, client_events):
    client.connect("127.0.0.1", server.port)
    client_events["messages"].get(timeout=TIMEOUT)
    assert _wait_for(lambda: server.client_count() == 1)
    count = server.client_count()
    assert count == 1
    server.send("output", 0)
    assert client_events["messages"].get(timeout=TIMEOUT) == "output"
    assert client.is_connected


def test_server_send_negative_index_raises(server):
    with pytest.raises(IndexError):
        server.send("x", -1)


def test_client_disconnect_is_reported(server, client, client_events, server_events):
    client.connect("127.0.0.1", server.port)
    client_events["messages"].get(timeout=TIMEOUT)
    assert _wait_for(lambda: server.client_count() == 1)
    client.disconnect()
    assert not client.is_connected
    assert client_events["disconnected"].get(timeout=TIMEOUT) is True
    assert server_events["disconnected"].get(timeout=TIMEOUT) == 0
    assert server.client_count() == 0


def test_server_close_disconnects_client(server, client, client_events):
    client.connect("127.0.0.1", server.port)
    client_events["messages"].get(timeout=TIMEOUT)
    assert _wait_for(lambda: server.client_count() == 1)
    server.close()
    assert not server.is_listening
    assert client_events["disconnected"].get(timeout=TIMEOUT) is True
    assert _wait_for(lambda: not client.is_connected)
    assert client.is_connected is False


def test_send_without_connection_raises():
    with pytest.raises(ConnectionError):
        TCPClient().send("x")


def test_connect_refused_raises():
    with pytest.raises(OSError):
        TCPClient().connect("127.0.0.1", _free_port())


def test_listening_on_busy_port_fails(server):
    other = TCPServer()
    try:
        assert other.start_listening(server.port) is False
        assert not other.is_listening
    finally:
        other.close()


def test_stop_listening(server):
    server.stop_listening()
    assert not server.is_listening
    with pytest.raises(OSError):
        TCPClient().connect("127.0.0.1", server.port)