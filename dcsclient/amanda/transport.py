"""
Bounded-retry stream transport for the AMANDA protocol.

The socket is non-blocking and every read or write is preceded by a
readiness poll bounded by ``timeout``:

- poll finds nothing ready   -> count a try and poll again
- poll reports an error      -> COMM_ERROR, no retry
- raw read/write fails       -> COMM_ERROR, no retry
- tries reach ``retries``    -> TIMEOUT

Timeouts are transient; socket errors are not. Results are byte counts
(>= 0) or negative ErrorCode values, never exceptions.
"""

import logging
import select
import socket
import time
from abc import ABC, abstractmethod
from typing import Optional

from .constants import DEFAULT_PORT, DEFAULT_RETRIES, DEFAULT_TIMEOUT, RECV_CHUNK_SIZE
from .errors import ErrorCode

logger = logging.getLogger(__name__)

# Poll results
POLL_ERROR = -1
POLL_NOTHING = 0
POLL_READY = 1


class Transport(ABC):
    """Connection-oriented byte transport used by DCSClient."""

    @property
    @abstractmethod
    def connected(self) -> bool:
        """True while a usable connection is open."""

    @abstractmethod
    def connect(self) -> bool:
        """Open a connection, closing any previous one. Returns success."""

    @abstractmethod
    def close(self) -> None:
        """Release the connection. Safe to call when already closed."""

    @abstractmethod
    def send_all(self, data: bytes) -> int:
        """Send every byte of ``data``. Returns len(data) or a negative ErrorCode."""

    @abstractmethod
    def receive_exact(self, size: int) -> tuple[int, bytes]:
        """Receive exactly ``size`` bytes. Returns (size, data) or (ErrorCode, b"")."""


class SocketTransport(Transport):
    """
    TCP transport with readiness polling and bounded retries.

    Example usage:
        transport = SocketTransport("dcs-server", 4242, timeout=2.0, retries=5)
        if transport.connect():
            transport.send_all(b"...")
            status, data = transport.receive_exact(8)
            transport.close()
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
    ):
        """
        Args:
            host: Server host
            port: Server port
            timeout: Seconds per connect attempt and per readiness poll;
                also the pause between connect attempts
            retries: Connect attempts, and empty polls tolerated per transfer
        """
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        if retries < 1:
            raise ValueError(f"retries must be >= 1, got {retries}")

        self._host = host
        self._port = port
        self._timeout = timeout
        self._retries = retries
        self._socket: Optional[socket.socket] = None

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def retries(self) -> int:
        return self._retries

    @property
    def connected(self) -> bool:
        return self._socket is not None and self._socket.fileno() != -1

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> bool:
        self.close()

        tries = 0
        while tries < self._retries:
            sock = self._open()
            if sock is not None:
                sock.setblocking(False)
                self._socket = sock
                logger.debug(f"Connected to {self._host}:{self._port}")
                return True

            tries += 1
            logger.debug(f"Connection attempt failed, tries <{tries}/{self._retries}>")
            if tries < self._retries:
                self._sleep(self._timeout)

        logger.warning(f"Could not connect to {self._host}:{self._port} after {self._retries} attempts")
        return False

    def close(self) -> None:
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

    # ------------------------------------------------------------------
    # Byte exchange
    # ------------------------------------------------------------------

    def send_all(self, data: bytes) -> int:
        if not self.connected:
            return ErrorCode.BAD_STATE

        view = memoryview(data)
        size = len(view)
        sent = 0
        tries = 0

        while sent < size and tries < self._retries:
            ready = self._poll(write=True)
            if ready == POLL_NOTHING:
                tries += 1
                logger.debug(f"Send timeout, tries <{tries}/{self._retries}>")
                continue
            if ready == POLL_ERROR:
                logger.debug("Communication error while polling for write")
                return ErrorCode.COMM_ERROR

            try:
                n = self._raw_send(view[sent:])
            except (BlockingIOError, InterruptedError):
                tries += 1
                continue
            except OSError as e:
                logger.debug(f"Communication error on send: {e}")
                return ErrorCode.COMM_ERROR

            if n <= 0:
                logger.debug("Communication error on send: nothing written")
                return ErrorCode.COMM_ERROR
            sent += n

        if sent < size:
            return ErrorCode.TIMEOUT
        return sent

    def receive_exact(self, size: int) -> tuple[int, bytes]:
        if not self.connected:
            return ErrorCode.BAD_STATE, b""

        buffer = bytearray()
        tries = 0

        while len(buffer) < size and tries < self._retries:
            ready = self._poll(write=False)
            if ready == POLL_NOTHING:
                tries += 1
                logger.debug(f"Receive timeout, tries <{tries}/{self._retries}>")
                continue
            if ready == POLL_ERROR:
                logger.debug("Communication error while polling for read")
                return ErrorCode.COMM_ERROR, b""

            try:
                chunk = self._raw_recv(min(size - len(buffer), RECV_CHUNK_SIZE))
            except (BlockingIOError, InterruptedError):
                tries += 1
                continue
            except OSError as e:
                logger.debug(f"Communication error on receive: {e}")
                return ErrorCode.COMM_ERROR, b""

            if not chunk:
                logger.debug("Connection closed by server")
                return ErrorCode.COMM_ERROR, b""
            buffer.extend(chunk)

        if len(buffer) < size:
            return ErrorCode.TIMEOUT, b""
        return len(buffer), bytes(buffer)

    # ------------------------------------------------------------------
    # I/O seams (overridden in tests)
    # ------------------------------------------------------------------

    def _open(self) -> Optional[socket.socket]:
        """One connection attempt bounded by timeout. None on failure."""
        try:
            return socket.create_connection((self._host, self._port), timeout=self._timeout)
        except OSError as e:
            logger.debug(f"Connect to {self._host}:{self._port} failed: {e}")
            return None

    def _poll(self, write: bool) -> int:
        """Wait up to timeout for readiness. Returns POLL_READY/NOTHING/ERROR."""
        sock = self._socket
        if sock is None:
            return POLL_ERROR
        rlist = [] if write else [sock]
        wlist = [sock] if write else []
        try:
            readable, writable, failed = select.select(rlist, wlist, [sock], self._timeout)
        except (OSError, ValueError) as e:
            logger.debug(f"select() failed: {e}")
            return POLL_ERROR
        if failed:
            return POLL_ERROR
        if writable or readable:
            return POLL_READY
        return POLL_NOTHING

    def _raw_send(self, data: memoryview) -> int:
        assert self._socket is not None, "not connected"
        return self._socket.send(data)

    def _raw_recv(self, size: int) -> bytes:
        assert self._socket is not None, "not connected"
        return self._socket.recv(size)

    def _sleep(self, seconds: float) -> None:
        time.sleep(seconds)

    def __repr__(self) -> str:
        state = "connected" if self.connected else "disconnected"
        return f"SocketTransport({self._host}:{self._port}, {state})"
