"""Protean Engine runner for the storefront domain.

Only needed when ``event_processing = "async"`` (the production overlay):
the Engine picks up stored events and runs the notification handlers and
projectors outside the request.

Usage:
    PROTEAN_ENV=production python src/server.py
    PROTEAN_ENV=production python src/server.py --test-mode   # drain once and exit
"""

import argparse

from protean.server.engine import Engine


def main():
    parser = argparse.ArgumentParser(description="SafeStore Engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Process pending messages once and exit",
    )
    args = parser.parse_args()

    from storefront.domain import storefront

    storefront.init()
    engine = Engine(storefront, test_mode=args.test_mode)
    engine.run()


if __name__ == "__main__":
    main()
