"""Command-line entry point for the pharmacy admin service.

Usage:
    pharmacy-admin serve [--host 0.0.0.0] [--port 8000]
    pharmacy-admin check [--comprehensive]
    pharmacy-admin hash-password
    pharmacy-admin generate-secret
"""

import argparse
import asyncio
import getpass
import logging
import secrets
import sys

from src.auth.guard import initialize
from src.auth.passwords import check_password_strength, hash_password
from src.config import get_settings

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_serve(args: argparse.Namespace) -> int:
    """Validate the environment, then run the API under uvicorn."""
    import uvicorn

    result = initialize(get_settings())
    if not result.ok:
        print("Refusing to start: configuration is invalid.", file=sys.stderr)
        for problem in result.errors:
            print(f"  - {problem}", file=sys.stderr)
        return 1

    uvicorn.run("src.api.main:app", host=args.host, port=args.port)
    return 0


async def _run_check(comprehensive: bool) -> str:
    from src.monitor.service import IntegrationHealthMonitor

    monitor = IntegrationHealthMonitor()
    await monitor.perform_health_checks()
    await monitor.collect_metrics()
    if not comprehensive:
        return monitor.generate_health_report()
    await monitor.collect_inventory_metrics()
    await monitor.collect_order_metrics()
    return monitor.generate_comprehensive_report()


def cmd_check(args: argparse.Namespace) -> int:
    """Run one round of integration health checks and print the report."""
    try:
        report = asyncio.run(_run_check(args.comprehensive))
    except Exception as e:
        print(f"Failed to run health check: {e}", file=sys.stderr)
        return 1
    print(report)
    return 0


def cmd_hash_password(args: argparse.Namespace) -> int:
    """Prompt for a password and print its bcrypt hash for ADMIN_PASSWORD_HASH."""
    password = args.password or getpass.getpass("New admin password: ")
    problems = check_password_strength(password)
    if problems:
        print("Password does not meet policy:", file=sys.stderr)
        for problem in problems:
            print(f"  - {problem}", file=sys.stderr)
        return 1
    print(hash_password(password, rounds=get_settings().bcrypt_rounds))
    return 0


def cmd_generate_secret(args: argparse.Namespace) -> int:
    print(secrets.token_hex(32))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pharmacy-admin", description="Pharmacy admin service")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the admin API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)

    check = sub.add_parser("check", help="Run integration health checks once and print a report")
    check.add_argument("--comprehensive", action="store_true", help="Include inventory and order metrics")
    check.set_defaults(func=cmd_check)

    hash_pw = sub.add_parser("hash-password", help="Print a bcrypt hash for ADMIN_PASSWORD_HASH")
    hash_pw.add_argument("--password", default="", help="Password to hash (prompted when omitted)")
    hash_pw.set_defaults(func=cmd_hash_password)

    gen = sub.add_parser("generate-secret", help="Print a random 64-character JWT_SECRET")
    gen.set_defaults(func=cmd_generate_secret)

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    _configure_logging()
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
