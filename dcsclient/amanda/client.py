"""
AMANDA protocol driver.

DCSClient retrieves archived values from a DCS archive server. Entities are
named either by data point name (EntityKind.DP_NAME) or by alias
(EntityKind.ALIAS). There are two kinds of query:

- single entity: get_values() fills a list and returns the value count
- name list: get_values_many() returns a ResultMap, issuing one request per
  sub-batch of ``multi_split`` names

Every query opens its own connection and closes it before returning, so one
client can be reused for many queries (but not from several threads at once).

Results are non-negative counts or negative ErrorCode values. After a
SERVER_ERROR or UNKNOWN_DP the server's code and text are available from
server_error_code and server_error.
"""

import logging
from typing import Optional, Sequence

from dcsclient.types import DCSValue, EntityKind

from .batch import BatchDriver, ResultMap, collect_batched
from .constants import DEFAULT_MULTI_SPLIT, DEFAULT_PORT, DEFAULT_RETRIES, DEFAULT_TIMEOUT, HEADER_SIZE
from .errors import ErrorCode, ServerErrorCode, error_string, normalize_server_error_code
from .message import Message, MessageError, MessageKind, decode_header
from .transport import SocketTransport, Transport

logger = logging.getLogger(__name__)


class DCSClient(BatchDriver):
    """
    Client for the DCS archive (AMANDA) server.

    Example usage:
        client = DCSClient("dcs-server", 4242, timeout=5.0, retries=3)

        values = []
        n = client.get_alias_values("TPC_HV_SECTOR_0", 1190000000, 1190003600, values)
        if n < 0:
            print(client.error_string(n), client.server_error)

        result = client.get_alias_values_many(aliases, 1190000000, 1190003600)
        if result is None:
            print(client.error_string(client.last_error))
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        multi_split: int = DEFAULT_MULTI_SPLIT,
        *,
        transport: Optional[Transport] = None,
    ):
        """
        Args:
            host: Server host
            port: Server port
            timeout: Seconds per poll/connect attempt, and between connect attempts
            retries: Attempts before a connect or transfer is given up
            multi_split: Maximum names per request in get_values_many()
            transport: Transport to use instead of a SocketTransport (tests).
                When given, timeout and retries are ignored; the transport
                carries its own.
        """
        if multi_split < 1:
            raise ValueError(f"multi_split must be >= 1, got {multi_split}")

        self._host = host
        self._port = port
        self._multi_split = multi_split
        self._transport = transport if transport is not None else SocketTransport(host, port, timeout, retries)

        self._server_error_code: int = ServerErrorCode.NONE
        self._server_error = ""
        self._last_error: int = 0

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def multi_split(self) -> int:
        return self._multi_split

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def server_error_code(self) -> int:
        """Code from the ERROR message of the last query (NONE if there was none)."""
        return self._server_error_code

    @property
    def server_error(self) -> str:
        """Text from the ERROR or UNKNOWN_DP message of the last query."""
        return self._server_error

    @property
    def last_error(self) -> int:
        """Result code of the last query (0 on success)."""
        return self._last_error

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._transport.connected

    def is_connected(self) -> bool:
        """True if there is a valid connection to the server."""
        return self._transport.connected

    def connect(self) -> bool:
        return self._transport.connect()

    def close(self) -> None:
        self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # ------------------------------------------------------------------
    # Framing
    # ------------------------------------------------------------------

    def send_message(self, message: Message) -> int:
        """Serialize and send a message. Returns bytes sent or an ErrorCode."""
        try:
            data = message.encode()
        except MessageError as e:
            logger.error(f"Can't encode {message!r}: {e}")
            return ErrorCode.BAD_MESSAGE

        logger.debug(f"Sending {message!r}")
        return self._transport.send_all(data)

    def receive_message(self) -> tuple[int, Optional[Message]]:
        """Receive one message. Returns (bytes received, message) or (ErrorCode, None)."""
        status, header = self._transport.receive_exact(HEADER_SIZE)
        if status < 0:
            logger.debug(f"Can't receive message header! Reason: {error_string(status)}")
            return status, None

        try:
            kind, body_size = decode_header(header)
        except MessageError as e:
            logger.error(f"Bad message header: {e}")
            return ErrorCode.BAD_MESSAGE, None

        status, body = self._transport.receive_exact(body_size)
        if status < 0:
            logger.debug(f"Can't receive message body! Reason: {error_string(status)}")
            return status, None

        try:
            message = Message.decode_body(kind, body)
        except MessageError as e:
            logger.error(f"Bad message body: {e}")
            return ErrorCode.BAD_MESSAGE, None

        logger.debug(f"Received {message!r}")
        return HEADER_SIZE + status, message

    def send_request(self, kind: EntityKind, names: Sequence[str], start_time: int, end_time: int) -> int:
        """Send a REQUEST for one name or a MULTI_REQUEST for several."""
        try:
            if len(names) == 1:
                message = Message.request(kind, start_time, end_time, names[0])
            else:
                message = Message.multi_request(kind, start_time, end_time)
                for name in names:
                    if not message.add_request_string(name):
                        logger.error(f"Can't add {name!r} to multi request")
                        return ErrorCode.BAD_MESSAGE
        except MessageError as e:
            logger.error(f"Can't build request: {e}")
            return ErrorCode.BAD_MESSAGE

        return self.send_message(message)

    def receive_value_set(self, target: list) -> tuple[int, int]:
        """Receive one set of values into ``target``.

        Returns (count, owner_index). count is 0 with a negative owner_index
        for the end-of-stream sentinel, or a negative ErrorCode on failure.
        """
        status, message = self.receive_message()
        if status < 0:
            logger.error(f"Can't receive message! Reason: {error_string(status)}")
            return status, -1
        assert message is not None

        if message.kind == MessageKind.RESULT_SET:
            if message.is_end_of_stream:
                return 0, message.owner_index
            target.extend(message.values)
            return len(message.values), message.owner_index

        if message.kind == MessageKind.ERROR:
            self._server_error_code = normalize_server_error_code(message.error_code)
            self._server_error = message.error_string
            logger.error(f"Server error {self._server_error_code}: {self._server_error}")
            return ErrorCode.SERVER_ERROR, -1

        if message.kind == MessageKind.UNKNOWN_DP:
            self._server_error = message.error_string
            logger.error(f"Unknown alias/DP: {self._server_error}")
            return ErrorCode.UNKNOWN_DP, -1

        logger.error(f"Bad message type received: {message.kind.name}")
        return ErrorCode.BAD_MESSAGE, -1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_values(self, kind: EntityKind, name: str, start_time: int, end_time: int, result: list[DCSValue]) -> int:
        """
        Read the values of one alias/data point in [start_time, end_time).

        Args:
            kind: Whether ``name`` is an alias or a data point name
            name: Alias or data point name
            start_time: Start of the interval (UNIX seconds)
            end_time: End of the interval (UNIX seconds, exclusive)
            result: List the retrieved DCSValue objects are appended to.
                Values are appended as each set arrives, so on failure it
                keeps whatever was received before the error.

        Returns:
            Number of values read (>= 0), or a negative ErrorCode
        """
        self._reset_server_error()
        status = self._get_values(kind, name, start_time, end_time, result)
        self._last_error = min(status, 0)
        return status

    def _get_values(self, kind: EntityKind, name: str, start_time: int, end_time: int, result: list[DCSValue]) -> int:
        try:
            message = Message.request(kind, start_time, end_time, name)
        except MessageError as e:
            logger.error(f"Invalid query for {name!r}: {e}")
            return ErrorCode.INVALID_PARAMETER
        if end_time < start_time:
            logger.error(f"Invalid time range {start_time}..{end_time}")
            return ErrorCode.INVALID_PARAMETER

        self.connect()
        if not self.is_connected():
            logger.error("Not connected!")
            return ErrorCode.BAD_STATE

        try:
            status = self.send_message(message)
            if status < 0:
                logger.error(f"Can't send request message! Reason: {error_string(status)}")
                return status

            received = 0
            while True:
                status, owner_index = self.receive_value_set(result)
                if status < 0:
                    return status
                if owner_index < 0:
                    break
                received += status
        finally:
            self.close()

        logger.debug(f"Received {received} values for {name}")
        return received

    def get_values_many(
        self,
        kind: EntityKind,
        names: Sequence[str],
        start_time: int,
        end_time: int,
        start_index: int = 0,
        end_index: Optional[int] = None,
    ) -> Optional[ResultMap]:
        """
        Read the values of names[start_index:end_index] in [start_time, end_time).

        Names are requested in sub-batches of multi_split, one connection each.

        Returns:
            ResultMap of name -> values, or None on failure (see last_error).
            Results of earlier sub-batches are discarded on failure.
        """
        self._reset_server_error()
        try:
            Message.multi_request(kind, start_time, end_time)
        except MessageError as e:
            logger.error(f"Invalid query: {e}")
            self._last_error = ErrorCode.INVALID_PARAMETER
            return None
        if end_time < start_time:
            logger.error(f"Invalid time range {start_time}..{end_time}")
            self._last_error = ErrorCode.INVALID_PARAMETER
            return None

        status, result = collect_batched(
            self, kind, names, start_time, end_time, self._multi_split, start_index, end_index
        )
        self._last_error = min(status, 0)
        return result

    def get_dp_values(self, dp_name: str, start_time: int, end_time: int, result: list[DCSValue]) -> int:
        """get_values() for a data point name."""
        return self.get_values(EntityKind.DP_NAME, dp_name, start_time, end_time, result)

    def get_alias_values(self, alias: str, start_time: int, end_time: int, result: list[DCSValue]) -> int:
        """get_values() for an alias."""
        return self.get_values(EntityKind.ALIAS, alias, start_time, end_time, result)

    def get_dp_values_many(
        self,
        dp_names: Sequence[str],
        start_time: int,
        end_time: int,
        start_index: int = 0,
        end_index: Optional[int] = None,
    ) -> Optional[ResultMap]:
        """get_values_many() for data point names."""
        return self.get_values_many(EntityKind.DP_NAME, dp_names, start_time, end_time, start_index, end_index)

    def get_alias_values_many(
        self,
        aliases: Sequence[str],
        start_time: int,
        end_time: int,
        start_index: int = 0,
        end_index: Optional[int] = None,
    ) -> Optional[ResultMap]:
        """get_values_many() for aliases."""
        return self.get_values_many(EntityKind.ALIAS, aliases, start_time, end_time, start_index, end_index)

    def _reset_server_error(self) -> None:
        self._server_error_code = ServerErrorCode.NONE
        self._server_error = ""

    @staticmethod
    def error_string(code: int) -> str:
        """Short description of an ErrorCode."""
        return error_string(code)

    def __repr__(self) -> str:
        return f"DCSClient({self._host}:{self._port}, multi_split={self._multi_split})"
