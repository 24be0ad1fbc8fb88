"""Tests for error codes, their strings and the exception mapping."""

import pytest

from dcsclient.amanda.errors import (
    ErrorCode,
    ServerErrorCode,
    error_string,
    is_error,
    normalize_server_error_code,
    server_error_string,
)
from dcsclient.errors import DCSError, DCSServerError, raise_for_code


class TestErrorCodes:
    def test_values(self):
        assert [int(c) for c in ErrorCode] == [-1, -2, -3, -4, -5, -6, -7]

    @pytest.mark.parametrize(
        "code, text",
        [
            (ErrorCode.BAD_STATE, "BadState"),
            (ErrorCode.INVALID_PARAMETER, "InvalidParameter"),
            (ErrorCode.TIMEOUT, "Timeout"),
            (ErrorCode.BAD_MESSAGE, "BadMessage"),
            (ErrorCode.COMM_ERROR, "CommunicationError"),
            (ErrorCode.SERVER_ERROR, "ServerError"),
            (ErrorCode.UNKNOWN_DP, "UnknownAlias/DP"),
        ],
    )
    def test_error_string(self, code, text):
        assert error_string(code) == text
        assert error_string(int(code)) == text

    def test_unknown_code(self, caplog):
        assert error_string(-42) == "UnknownCode"
        assert error_string(0) == "UnknownCode"
        assert "Unknown error code -42" in caplog.text

    def test_is_error(self):
        assert is_error(ErrorCode.TIMEOUT)
        assert not is_error(0)
        assert not is_error(17)


class TestServerErrorCodes:
    def test_known(self):
        assert server_error_string(ServerErrorCode.INVALID_TIME_RANGE) == "InvalidTimeRange"
        assert server_error_string(255) == "UnknownError"

    def test_unknown(self):
        assert server_error_string(99) == "ServerErrorCode(99)"

    def test_normalize(self):
        assert normalize_server_error_code(1) is ServerErrorCode.UNKNOWN_ALIAS_DP_NAME
        assert normalize_server_error_code(99) == 99


class TestExceptions:
    def test_dcs_error_message(self):
        err = DCSError(ErrorCode.TIMEOUT)
        assert str(err) == "Timeout"
        assert err.code == ErrorCode.TIMEOUT

        err = DCSError(ErrorCode.UNKNOWN_DP, "NO_SUCH_ALIAS")
        assert str(err) == "UnknownAlias/DP: NO_SUCH_ALIAS"
        assert "NO_SUCH_ALIAS" in repr(err)

    def test_server_error(self):
        err = DCSServerError(2, "end before start")
        assert isinstance(err, DCSError)
        assert err.code == ErrorCode.SERVER_ERROR
        assert err.server_code == 2
        assert str(err) == "ServerError: InvalidTimeRange: end before start"

    def test_raise_for_count(self):
        raise_for_code(0)
        raise_for_code(12)

    def test_raise_for_server_error(self):
        with pytest.raises(DCSServerError) as exc_info:
            raise_for_code(ErrorCode.SERVER_ERROR, 4, "bad request")
        assert exc_info.value.server_message == "bad request"

    def test_raise_for_unknown_dp(self):
        with pytest.raises(DCSError, match="NO_SUCH"):
            raise_for_code(ErrorCode.UNKNOWN_DP, server_message="NO_SUCH")

    def test_raise_for_transport_error(self):
        with pytest.raises(DCSError) as exc_info:
            raise_for_code(ErrorCode.COMM_ERROR, server_message="stale")
        assert not isinstance(exc_info.value, DCSServerError)
        assert str(exc_info.value) == "CommunicationError"
