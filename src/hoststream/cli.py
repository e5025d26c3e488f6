"""Command-line interface for hoststream."""

import argparse
import logging
from dataclasses import replace
from pathlib import Path

from hoststream import __version__
from hoststream.config import APP_NAME, SETTINGS, ServerSettings, endpoint_url
from hoststream.log_config import setup_logger


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than zero")
    return parsed


def _settings_from(args: argparse.Namespace) -> ServerSettings:
    return replace(
        SETTINGS,
        host=args.host,
        port=args.port,
        tick_interval=args.interval,
    )


def cmd_serve(args: argparse.Namespace) -> int:
    # Imported here so `url` and `--help` stay fast
    from hoststream.server import serve

    serve(_settings_from(args), log_level=logging.getLevelName(args.log_level).lower())
    return 0


def cmd_url(args: argparse.Namespace) -> int:
    print(endpoint_url(_settings_from(args)))
    return 0


def cmd_console(args: argparse.Namespace) -> int:
    from hoststream.app import HoststreamApp

    HoststreamApp(settings=_settings_from(args)).run()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_NAME, description="Local telemetry stream.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default=logging.INFO,
        type=lambda name: logging.getLevelName(name.upper()),
        help="console log level (default: INFO)",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="also write a detailed log here")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--host", default=SETTINGS.host)
    common.add_argument("--port", type=int, default=SETTINGS.port)
    common.add_argument("--interval", type=_positive_float, default=SETTINGS.tick_interval)

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", parents=[common], help="serve the WebSocket stream")
    serve.set_defaults(func=cmd_serve)

    url = sub.add_parser("url", parents=[common], help="print the endpoint URL")
    url.set_defaults(func=cmd_url)

    console = sub.add_parser("console", parents=[common], help="live console view")
    console.set_defaults(func=cmd_console)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not isinstance(args.log_level, int):
        parser.error(f"unknown log level: {args.log_level}")
    setup_logger(
        APP_NAME,
        level=args.log_level,
        log_file=args.log_file,
        textual=args.command == "console",
    )
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
