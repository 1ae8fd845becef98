# Passgen: Command line entry point
#
#   passgen get <identifier> [--length N] [--complexity C] [--hash sha256]
#   passgen last <identifier>
#   passgen set <identifier> <password> <salt> [--no-backup]
#   passgen remove <identifier>
#   passgen list [folder]
#   passgen environments [--kind all|kv_only|legacy_only]
#   passgen serve [--host H] [--port P]

import argparse
import json
import logging
import sys

from . import __version__
from .core import EventSeverity, EventType, get_audit_logger, get_settings
from .core.exceptions import PassgenError
from .operations import (
    ENVIRONMENT_KINDS,
    environments,
    list_passwords,
    passgen,
    remove_password,
    set_password,
)


def _password_options(args) -> dict:
    options = {}
    if args.length is not None:
        options["length"] = args.length
    if args.complexity is not None:
        options["complexity"] = args.complexity
    if args.complex_only:
        options["complex_only"] = True
    if args.hash:
        options["hash"] = args.hash
    if args.timeout is not None:
        options["gen_timeout_seconds"] = args.timeout
    return options


def _add_password_arguments(parser):
    parser.add_argument("identifier", help="Password identifier")
    parser.add_argument("--length", type=int, default=None,
                        help="Password length (changing it rotates the password)")
    parser.add_argument("--complexity", type=int, choices=(0, 1, 2), default=None,
                        help="0: alphanumeric, 1: safe symbols, 2: printable ASCII")
    parser.add_argument("--complex-only", action="store_true",
                        help="Only use the symbols added by --complexity")
    parser.add_argument("--hash", choices=("md5", "sha256", "sha512"), default=None,
                        help="Print a modular crypt hash instead of the password")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Generation timeout in seconds (0 disables it)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="passgen",
        description="Generate, rotate and migrate machine-generated passwords",
    )
    parser.add_argument("--version", action="version", version=f"passgen {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    _add_password_arguments(sub.add_parser("get", help="Current password (generated on first use)"))
    _add_password_arguments(sub.add_parser("last", help="Previous password"))

    set_parser = sub.add_parser("set", help="Store a password and salt")
    set_parser.add_argument("identifier")
    set_parser.add_argument("password")
    set_parser.add_argument("salt")
    set_parser.add_argument("--no-backup", action="store_true",
                            help="Do not move the current password to last")

    remove_parser = sub.add_parser("remove", help="Delete current and last passwords")
    remove_parser.add_argument("identifier")

    list_parser = sub.add_parser("list", help="List stored passwords")
    list_parser.add_argument("folder", nargs="?", default=None)

    env_parser = sub.add_parser("environments", help="Environments holding passwords")
    env_parser.add_argument("--kind", choices=ENVIRONMENT_KINDS, default="all")

    serve_parser = sub.add_parser("serve", help="Run the KV service")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def run(args) -> int:
    settings = get_settings()

    if args.command in ("get", "last"):
        options = _password_options(args)
        if args.command == "last":
            options["last"] = True
        print(passgen(args.identifier, options, settings=settings))
    elif args.command == "set":
        set_password(args.identifier, args.password, args.salt,
                     backup=not args.no_backup, settings=settings)
    elif args.command == "remove":
        remove_password(args.identifier, settings=settings)
    elif args.command == "list":
        results = list_passwords(args.folder, settings=settings)
        names = sorted(results.get("keys", {}))
        folders = [f"{f}/" for f in results.get("folders", [])]
        print(json.dumps({"keys": names, "folders": folders}, indent=2))
    elif args.command == "environments":
        for env in environments(args.kind, settings=settings):
            print(env)
    elif args.command == "serve":
        import uvicorn

        get_audit_logger().log_event(
            event_type=EventType.SYSTEM_START,
            severity=EventSeverity.INFO,
            message="Passgen KV service starting",
            details={"version": __version__, "host": args.host, "port": args.port},
        )
        uvicorn.run("passgen.api.main:app", host=args.host, port=args.port)
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return run(args)
    except PassgenError as e:
        print(f"passgen: error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
