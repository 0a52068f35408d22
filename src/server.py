"""Protean Engine runner for the ordering domain.

Only needed when events are processed asynchronously (the production
configuration): the Engine picks up committed events and dispatches them to
the audit handlers.

Usage:
    python src/server.py
    python src/server.py --test-mode   # Drain pending work and exit
"""

import argparse

from protean.server.engine import Engine

from ordering.utils.logging import configure_logging


def main():
    parser = argparse.ArgumentParser(description="Marketplace ordering Engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Process pending messages once and exit",
    )
    args = parser.parse_args()

    configure_logging()

    from ordering.domain import ordering

    ordering.init()
    engine = Engine(ordering, test_mode=args.test_mode)
    engine.run()


if __name__ == "__main__":
    main()
