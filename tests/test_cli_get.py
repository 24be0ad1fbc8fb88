"""Tests for dcsclient.cli.get -- dcsget CLI tool."""

import contextlib
import io
import json
from unittest import mock

import pytest

from dcsclient.amanda import DCSClient, Message
from dcsclient.cli._common import format_value, format_values, parse_time
from dcsclient.testing import FakeTransport, end_of_stream, result_set
from dcsclient.types import DCSValue, EntityKind, ValueType


def _fake_client(sessions, multi_split=100):
    return DCSClient("fake", multi_split=multi_split, transport=FakeTransport(sessions))


def _run(argv, client):
    from dcsclient.cli.get import main

    out, err = io.StringIO(), io.StringIO()
    with mock.patch("dcsclient.cli.get.make_client", return_value=client):
        with mock.patch("sys.argv", ["dcsget", *argv]):
            with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
                rc = main()
    return rc, out.getvalue(), err.getvalue()


class TestSingleName:
    """A single name uses get_values() and prints one line per value."""

    def test_text_output(self):
        client = _fake_client([[result_set(0, [(1190000000, 72.5)]), end_of_stream()]])
        rc, out, _ = _run(["--start", "1190000000", "--end", "1190003600", "dcs_ui:Temp.value"], client)

        assert rc == 0
        assert "dcs_ui:Temp.value" in out
        assert "2007-09-17 03:33:20" in out
        assert "72.5" in out
        request = client.transport.sent_messages()[0]
        assert request.entity_kind is EntityKind.DP_NAME

    def test_alias_flag(self):
        client = _fake_client([[end_of_stream()]])
        rc, out, _ = _run(["-a", "--start", "0", "--end", "10", "TPC_HV"], client)

        assert rc == 0
        assert "(no values)" in out
        assert client.transport.sent_messages()[0].entity_kind is EntityKind.ALIAS

    def test_iso_times(self):
        client = _fake_client([[end_of_stream()]])
        _run(["--start", "2007-09-17T03:33:20Z", "--end", "2007-09-17T04:33:20", "X"], client)

        request = client.transport.sent_messages()[0]
        assert (request.start_time, request.end_time) == (1190000000, 1190003600)

    def test_terse(self):
        client = _fake_client([[result_set(0, [(1, 1.5), (2, 2.5)]), end_of_stream()]])
        rc, out, _ = _run(["-t", "--start", "0", "--end", "10", "X"], client)
        assert rc == 0
        assert out.splitlines() == ["1.5", "2.5"]

    def test_json(self):
        client = _fake_client([[result_set(0, [(1, 1.5)]), end_of_stream()]])
        rc, out, _ = _run(["--format", "json", "--start", "0", "--end", "10", "X"], client)
        assert rc == 0
        assert json.loads(out) == {"name": "X", "count": 1, "values": [[1, 1.5]]}

    def test_number_format(self):
        client = _fake_client([[result_set(0, [(1, 1.5)]), end_of_stream()]])
        _, out, _ = _run(["-t", "-f", ".3f", "--start", "0", "--end", "10", "X"], client)
        assert out.strip() == "1.500"

    def test_client_closed(self):
        client = _fake_client([[end_of_stream()]])
        _run(["--start", "0", "--end", "10", "X"], client)
        assert client.transport.calls[-1] == "close"


class TestMultipleNames:
    """Several names use get_values_many() and print every name in order."""

    def test_multiple_names(self):
        client = _fake_client([[result_set(1, [(1, 2.0)]), result_set(0, [(1, 1.0)]), end_of_stream()]])
        rc, out, _ = _run(["-a", "--start", "0", "--end", "10", "A", "B", "C"], client)

        assert rc == 0
        lines = out.splitlines()
        assert lines[0].startswith("A")
        assert lines[1].startswith("B")
        assert lines[2].startswith("C") and "(no values)" in lines[2]

    def test_failure(self):
        client = _fake_client([[Message.error(4, "bad request")]])
        rc, out, err = _run(["--start", "0", "--end", "10", "A", "B"], client)

        assert rc == 1
        assert out == ""
        assert "ServerError: bad request" in err


class TestErrors:
    def test_unknown_dp(self):
        client = _fake_client([[Message.unknown_dp("NOPE")]])
        rc, _, err = _run(["--start", "0", "--end", "10", "NOPE"], client)
        assert rc == 1
        assert "UnknownAlias/DP: NOPE" in err

    def test_timeout_has_no_server_text(self):
        client = _fake_client([[]])
        client._server_error = "stale"
        rc, _, err = _run(["--start", "0", "--end", "10", "X"], client)
        assert rc == 1
        assert err.strip() == "Error: Timeout"

    def test_end_before_start(self):
        client = _fake_client([])
        rc, _, err = _run(["--start", "10", "--end", "0", "X"], client)
        assert rc == 2
        assert "before start" in err
        assert client.transport.calls == []

    def test_bad_time(self):
        rc, _, err = _run(["--start", "yesterday", "--end", "0", "X"], _fake_client([]))
        assert rc == 2
        assert "Invalid time" in err

    def test_missing_host(self):
        from dcsclient.cli.get import main

        err = io.StringIO()
        with mock.patch("dcsclient.cli.get.make_client", side_effect=ValueError("No DCS server host")):
            with mock.patch("sys.argv", ["dcsget", "--start", "0", "--end", "10", "X"]):
                with contextlib.redirect_stderr(err):
                    assert main() == 2
        assert "No DCS server host" in err.getvalue()

    def test_missing_start(self):
        with pytest.raises(SystemExit) as exc_info:
            _run(["--end", "10", "X"], _fake_client([]))
        assert exc_info.value.code == 2

    def test_keyboard_interrupt(self):
        client = _fake_client([])
        with mock.patch.object(client, "get_values", side_effect=KeyboardInterrupt):
            rc, _, _ = _run(["--start", "0", "--end", "10", "X"], client)
        assert rc == 130
        assert client.transport.calls == ["close"]


class TestMakeClient:
    def test_flags_passed_through(self):
        from dcsclient.cli._common import base_parser, make_client

        args = base_parser("test").parse_args(
            ["-H", "dcs-a", "-P", "5000", "--timeout", "0.5", "--retries", "2", "--split", "7"]
        )
        with mock.patch("dcsclient.client") as mock_client:
            make_client(args)
        mock_client.assert_called_once_with(host="dcs-a", port=5000, timeout=0.5, retries=2, multi_split=7)


class TestParseTime:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("1190000000", 1190000000),
            ("  1190000000 ", 1190000000),
            ("2007-09-17T03:33:20", 1190000000),
            ("2007-09-17 03:33:20Z", 1190000000),
            ("2007-09-17T05:33:20+02:00", 1190000000),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_time(text) == expected

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid time"):
            parse_time("next tuesday")


class TestFormat:
    def test_format_value(self):
        assert format_value(True, ".2f") == "True"
        assert format_value(0.1, None) == "0.1"
        assert format_value(7, None) == "7"
        assert format_value(7, "04d") == "0007"

    def test_text_lines(self):
        values = [DCSValue(0, 1.0), DCSValue(60, 2.0)]
        lines = format_values("A", values, fmt="text").splitlines()
        assert len(lines) == 2
        assert "1970-01-01 00:01:00" in lines[1]

    def test_json_bools(self):
        out = format_values("S", [DCSValue(1, True, ValueType.BOOL)], fmt="json")
        assert json.loads(out)["values"] == [[1, True]]

    def test_terse_empty(self):
        assert format_values("A", [], fmt="terse") == ""
