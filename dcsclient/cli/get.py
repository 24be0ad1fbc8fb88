"""dcsget -- Read archived values of aliases or data points."""

import sys

from dcsclient.amanda import ErrorCode, error_string
from dcsclient.cli._common import (
    EXIT_OK,
    EXIT_QUERY_ERROR,
    EXIT_USAGE_ERROR,
    base_parser,
    format_values,
    make_client,
    parse_time,
    setup_logging,
)
from dcsclient.types import EntityKind


def main() -> int:
    parser = base_parser("Read archived DCS values")
    parser.add_argument("names", nargs="+", metavar="NAME", help="alias or data point name(s)")
    parser.add_argument("-a", "--alias", action="store_true", help="names are aliases (default: data points)")
    parser.add_argument("--start", required=True, help="interval start (UNIX seconds or ISO-8601)")
    parser.add_argument("--end", required=True, help="interval end, exclusive (UNIX seconds or ISO-8601)")
    parser.add_argument("-f", "--number-format", default=None, help="Python format spec")
    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        start = parse_time(args.start)
        end = parse_time(args.end)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE_ERROR
    if end < start:
        print(f"Error: end ({end}) is before start ({start})", file=sys.stderr)
        return EXIT_USAGE_ERROR

    kind = EntityKind.ALIAS if args.alias else EntityKind.DP_NAME
    fmt = "terse" if args.terse else args.output_format

    try:
        client = make_client(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE_ERROR

    try:
        if len(args.names) == 1:
            values: list = []
            status = client.get_values(kind, args.names[0], start, end, values)
            if status < 0:
                _print_failure(client, status)
                return EXIT_QUERY_ERROR
            print(format_values(args.names[0], values, fmt=fmt, number_format=args.number_format))
        else:
            result = client.get_values_many(kind, args.names, start, end)
            if result is None:
                _print_failure(client, client.last_error)
                return EXIT_QUERY_ERROR
            for name in args.names:
                print(format_values(name, result.get(name, []), fmt=fmt, number_format=args.number_format))
    except KeyboardInterrupt:
        return 130
    finally:
        client.close()

    return EXIT_OK


def _print_failure(client, status: int) -> None:
    message = f"Error: {error_string(status)}"
    if status in (ErrorCode.SERVER_ERROR, ErrorCode.UNKNOWN_DP) and client.server_error:
        message += f": {client.server_error}"
    print(message, file=sys.stderr)


if __name__ == "__main__":
    sys.exit(main())
