"""TCP client and server used to link a controller and a plant over the network."""

from __future__ import annotations

import socket
import threading
from typing import Callable, Optional

DEFAULT_ADDRESS = "127.0.0.1"
DEFAULT_PORT = 12345

_BUFFER_SIZE = 4096
_POLL_INTERVAL = 0.1


def _close_socket(sock: socket.socket) -> None:
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    sock.close()


def _join(thread: Optional[threading.Thread]) -> None:
    if thread is not None and thread is not threading.current_thread():
        thread.join()


class TCPClient:
    """TCP client that reports received text through ``on_message``.

    Callbacks run on a background reader thread.
    """

    def __init__(
        self,
        on_connected: Optional[Callable[[str, int], None]] = None,
        on_disconnected: Optional[Callable[[], None]] = None,
        on_message: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.address = DEFAULT_ADDRESS
        self.port = DEFAULT_PORT
        self.on_connected = on_connected
        self.on_disconnected = on_disconnected
        self.on_message = on_message
        self._sock: Optional[socket.socket] = None
        self._reader: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._sock is not None

    def connect(self, address: str, port: int) -> None:
        """Connect to ``address``:``port``; raises ``OSError`` on failure."""
        self.disconnect()
        self.address = address
        self.port = port
        sock = socket.create_connection((address, port))
        sock.settimeout(_POLL_INTERVAL)
        self._sock = sock
        if self.on_connected is not None:
            self.on_connected(address, port)
        self._reader = threading.Thread(target=self._read_loop, args=(sock,), daemon=True)
        self._reader.start()

    def disconnect(self) -> None:
        """Close the connection if there is one."""
        sock = self._sock
        if sock is None:
            return
        reader = self._reader
        self._close(sock)
        _join(reader)

    def send(self, message: str) -> None:
        """Send ``message`` encoded as UTF-8."""
        sock = self._sock
        if sock is None:
            raise ConnectionError("client is not connected")
        sock.sendall(message.encode("utf-8"))

    def _read_loop(self, sock: socket.socket) -> None:
        while self._sock is sock:
            try:
                data = sock.recv(_BUFFER_SIZE)
            except socket.timeout:
                continue
            except OSError:
                break
            if not data:
                break
            if self.on_message is not None:
                self.on_message(data.decode("utf-8", errors="replace"))
        self._close(sock)

    def _close(self, sock: socket.socket) -> None:
        with self._lock:
            if self._sock is not sock:
                return
            self._sock = None
        _close_socket(sock)
        if self.on_disconnected is not None:
            self.on_disconnected()

    def __enter__(self) -> TCPClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()


class TCPServer:
    """TCP server greeting every client and relaying its messages.

    Clients are numbered by their position in the list of connected
    clients. Callbacks run on background threads.
    """

    def __init__(
        self,
        on_client_connected: Optional[Callable[[str], None]] = None,
        on_client_disconnected: Optional[Callable[[int], None]] = None,
        on_message: Optional[Callable[[str, int], None]] = None,
    ) -> None:
        self.port = DEFAULT_PORT
        self.on_client_connected = on_client_connected
        self.on_client_disconnected = on_client_disconnected
        self.on_message = on_message
        self._listener: Optional[socket.socket] = None
        self._accept_thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._clients: list[socket.socket] = []
        self._readers: dict[socket.socket, threading.Thread] = {}
        self._lock = threading.RLock()

    @property
    def is_listening(self) -> bool:
        return self._listener is not None

    def start_listening(self, port: int) -> bool:
        """Listen on all interfaces; return whether listening succeeded.

        With port 0 the system picks a port, stored in :attr:`port`.
        """
        self.stop_listening()
        self.port = port
        try:
            listener = socket.create_server(("", port))
        except OSError:
            return False
        listener.settimeout(_POLL_INTERVAL)
        self.port = listener.getsockname()[1]
        self._stop = threading.Event()
        self._listener = listener
        self._accept_thread = threading.Thread(
            target=self._accept_loop, args=(listener, self._stop), daemon=True
        )
        self._accept_thread.start()
        return True

    def stop_listening(self) -> None:
        """Stop accepting clients; connected clients stay connected."""
        listener, self._listener = self._listener, None
        thread, self._accept_thread = self._accept_thread, None
        self._stop.set()
        if listener is not None:
            listener.close()
        _join(thread)

    def close(self) -> None:
        """Stop listening and drop every client."""
        self.stop_listening()
        with self._lock:
            clients = list(self._clients)
            self._clients.clear()
            readers = [self._readers.pop(c) for c in clients if c in self._readers]
        for client in clients:
            _close_socket(client)
        for reader in readers:
            _join(reader)

    def client_count(self) -> int:
        """Number of connected clients."""
        with self._lock:
            return len(self._clients)

    def send(self, message: str, client_index: int) -> None:
        """Send ``message`` to a client; an index past the end is ignored."""
        if client_index < 0:
            raise IndexError("client index must not be negative")
        with self._lock:
            if client_index < len(self._clients):
                self._clients[client_index].sendall(message.encode("utf-8"))

    def _accept_loop(self, listener: socket.socket, stop: threading.Event) -> None:
        while not stop.is_set():
            try:
                connection, address = listener.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            self._add_client(connection, address[0])

    def _add_client(self, connection: socket.socket, address: str) -> None:
        connection.settimeout(_POLL_INTERVAL)
        with self._lock:
            self._clients.append(connection)
            index = len(self._clients) - 1
            try:
                connection.sendall(f"Hello client {index}".encode("utf-8"))
            except OSError:
                pass
            reader = threading.Thread(
                target=self._read_loop, args=(connection,), daemon=True
            )
            self._readers[connection] = reader
            reader.start()
        if self.on_client_connected is not None:
            self.on_client_connected(address)

    def _read_loop(self, connection: socket.socket) -> None:
        while True:
            try:
                data = connection.recv(_BUFFER_SIZE)
            except socket.timeout:
                with self._lock:
                    if connection not in self._clients:
                        return
                continue
            except OSError:
                break
            if not data:
                break
            with self._lock:
                if connection not in self._clients:
                    return
                index = self._clients.index(connection)
            if self.on_message is not None:
                self.on_message(data.decode("utf-8", errors="replace"), index)
        self._drop_client(connection)

    def _drop_client(self, connection: socket.socket) -> None:
        with self._lock:
            if connection not in self._clients:
                return
            index = self._clients.index(connection)
            del self._clients[index]
            self._readers.pop(connection, None)
        _close_socket(connection)
        if self.on_client_disconnected is not None:
            self.on_client_disconnected(index)

    def __enter__(self) -> TCPServer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()