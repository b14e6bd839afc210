"""Create the SQLite store and optionally register an integration.

Usage:
    python -m scripts.init_store
    python -m scripts.init_store --service woocommerce --url https://shop.example.com \
        --consumer-key ck_xxx --consumer-secret cs_xxx
    python -m scripts.init_store --service wordpress --url https://blog.example.com
"""

import argparse
import contextlib
import logging
import sys

from src.store import db

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Initialise the pharmacy store database")
    parser.add_argument("--db-path", default=None, help="Defaults to STORE_DB_PATH")
    parser.add_argument("--service", choices=["woocommerce", "wordpress"])
    parser.add_argument("--url", default="", help="Base URL of the store or site")
    parser.add_argument("--consumer-key", default="")
    parser.add_argument("--consumer-secret", default="")
    parser.add_argument("--disabled", action="store_true", help="Register the integration as disabled")
    args = parser.parse_args(argv)

    if args.service and not args.url:
        print("--url is required with --service", file=sys.stderr)
        sys.exit(2)

    try:
        with contextlib.closing(db.get_connection(args.db_path)) as conn:
            if args.service:
                db.save_integration_settings(
                    conn,
                    service=args.service,
                    enabled=not args.disabled,
                    base_url=args.url,
                    consumer_key=args.consumer_key,
                    consumer_secret=args.consumer_secret,
                )
                print(f"Saved {args.service} integration settings")
    except Exception as e:
        print(f"Failed to initialise store: {e}", file=sys.stderr)
        sys.exit(1)

    print("Store ready")


if __name__ == "__main__":
    main()
