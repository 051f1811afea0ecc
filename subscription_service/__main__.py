"""Command line launcher: ``python -m subscription_service`` or ``subscription-service``.

Options fall back to environment variables, and the chosen values are
exported again so the app factory sees them when uvicorn imports it (also
in reload workers).
"""

import argparse
import os
import sys
from typing import Optional, Sequence

import uvicorn

from subscription_service.config import DEFAULT_CONFIG_PATH

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() in ("1", "true", "yes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="subscription-service",
        description="Run the subscription lifecycle API together with its sweep scheduler.",
    )
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"), help="interface to listen on [$HOST]")
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("PORT", "8080")), help="TCP port to listen on [$PORT]"
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="minimum level written to stdout [$LOG_LEVEL]",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        default=os.getenv("LOG_FORMAT", "json"),
        help="json lines for collectors, console for a terminal [$LOG_FORMAT]",
    )
    parser.add_argument(
        "--config",
        default=os.getenv("CONFIG_PATH", DEFAULT_CONFIG_PATH),
        help="service YAML with plans, Pub/Sub, scheduler and lifecycle sections [$CONFIG_PATH]",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        default=_env_flag("RELOAD"),
        help="restart on source changes, for local development only [$RELOAD]",
    )
    return parser


def _print_banner(args: argparse.Namespace) -> None:
    rule = "-" * 48
    print(rule)
    print(f"subscription-service  http://{args.host}:{args.port}")
    print(f"  config     {args.config}")
    print(f"  log level  {args.log_level}")
    print(rule)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    os.environ.update(
        LOG_LEVEL=args.log_level,
        LOG_FORMAT=args.log_format,
        CONFIG_PATH=args.config,
    )
    if args.log_format == "console":
        _print_banner(args)

    try:
        uvicorn.run(
            "subscription_service.main:create_app",
            factory=True,
            host=args.host,
            port=args.port,
            log_level=args.log_level.lower(),
            reload=args.reload,
            # RequestLoggingMiddleware already logs each request
            access_log=False,
        )
    except KeyboardInterrupt:
        sys.exit(0)
    except Exception as e:
        print(f"subscription-service failed to start: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
