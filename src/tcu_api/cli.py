"""
Command line tools for building, parsing and checking TCU API envelopes.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import response_codes
from .config import ClientConfig
from .credential import UsernameToken
from .exceptions import TCUAPIError
from .request_builder import RequestBuilder
from .response_parser import ResponseParser
from .structure_validator import StructureValidator


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def _read_document(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _parse_params(pairs):
    """Turn repeated KEY=VALUE options into a dict; repeated keys become lists."""
    params = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got {pair!r}")
        if key in params:
            existing = params[key]
            params[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            params[key] = value
    return params


def cmd_codes(args):
    """List status codes command."""
    if args.category:
        codes = response_codes.CATEGORY_CODES[args.category]
    else:
        codes = response_codes.all_codes()
    for code in sorted(codes):
        info = response_codes.classify(code)
        print(f"  {code}  {info.message}  [{', '.join(info.categories())}]")
    return 0


def cmd_build(args):
    """Build a request envelope command."""
    setup_logging(args.verbose)

    config = ClientConfig.from_env()
    username = args.username or config.username
    token = args.token or config.security_token
    try:
        params = _parse_params(args.param or [])
        if args.operation:
            params = {"Operation": args.operation, **params}
        credential = UsernameToken.create(username, token)
        print(RequestBuilder().build(credential, params))
        return 0
    except (TCUAPIError, ValueError) as e:
        print(f"✗ Failed to build request: {e}", file=sys.stderr)
        return 1


def cmd_parse(args):
    """Parse a response document command."""
    setup_logging(args.verbose)

    try:
        record = ResponseParser().parse(_read_document(args.file))
    except (TCUAPIError, OSError) as e:
        print(f"✗ Failed to parse response: {e}", file=sys.stderr)
        return 1
    print(json.dumps(record.to_dict(), indent=2))
    return 0


def cmd_validate(args):
    """Structural validation command."""
    setup_logging(args.verbose)

    try:
        document = _read_document(args.file)
    except OSError as e:
        print(f"✗ Cannot read {args.file}: {e}", file=sys.stderr)
        return 1

    validator = StructureValidator()
    if args.direction == "request":
        valid, errors = validator.validate_request(document)
    else:
        valid, errors = validator.validate_response_section(document)

    if valid:
        print(f"✓ {args.file} is a well-formed {args.direction}")
        return 0
    print(f"✗ {args.file} failed {len(errors)} check(s):")
    for error in errors:
        print(f"  - {error}")
    return 1


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="TCU API envelope tools",
        prog="tcu-api"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands"
    )

    # Codes command
    codes_parser = subparsers.add_parser(
        "codes",
        help="List TCU status codes"
    )
    codes_parser.add_argument(
        "--category",
        choices=sorted(response_codes.CATEGORY_CODES),
        help="Only list codes in this category"
    )
    codes_parser.set_defaults(func=cmd_codes)

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Print a request envelope"
    )
    build_parser.add_argument(
        "--username",
        help="Account username (default: $TCU_API_USERNAME)"
    )
    build_parser.add_argument(
        "--token",
        help="Session token (default: $TCU_API_SECURITY_TOKEN)"
    )
    build_parser.add_argument(
        "--operation",
        help="Value for the Operation parameter"
    )
    build_parser.add_argument(
        "--param",
        action="append",
        metavar="KEY=VALUE",
        help="Request parameter; repeat a key to send a list"
    )
    build_parser.set_defaults(func=cmd_build)

    # Parse command
    parse_parser = subparsers.add_parser(
        "parse",
        help="Decode a response document into JSON"
    )
    parse_parser.add_argument(
        "file",
        help="Response XML file ('-' for stdin)"
    )
    parse_parser.set_defaults(func=cmd_parse)

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Check the structure of a request or response document"
    )
    validate_parser.add_argument(
        "file",
        help="XML file ('-' for stdin)"
    )
    validate_parser.add_argument(
        "--direction",
        choices=["request", "response"],
        default="request",
        help="Which structural rules to apply (default: request)"
    )
    validate_parser.set_defaults(func=cmd_validate)

    args = parser.parse_args(argv)

    if not hasattr(args, 'func'):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
