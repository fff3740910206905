"""Script to run database migrations."""

import argparse
import sys

from alembic import command
from alembic.config import Config

ALEMBIC_INI = "alembic.ini"


def upgrade(revision: str) -> None:
    """Upgrade the schema to a revision."""
    print(f"Upgrading schema to {revision}...")
    command.upgrade(Config(ALEMBIC_INI), revision)
    print("✓ Migrations completed successfully!")


def downgrade(revision: str) -> None:
    """Downgrade the schema to a revision."""
    print(f"Downgrading schema to {revision}...")
    command.downgrade(Config(ALEMBIC_INI), revision)
    print("✓ Downgrade completed successfully!")


def main() -> int:
    """Parse arguments and run the requested migration command."""
    parser = argparse.ArgumentParser(description=__doc__)
    subparsers = parser.add_subparsers(dest="action")
    up = subparsers.add_parser("upgrade", help="apply migrations")
    up.add_argument("revision", nargs="?", default="head")
    down = subparsers.add_parser("downgrade", help="revert migrations")
    down.add_argument("revision", nargs="?", default="-1")
    args = parser.parse_args()

    try:
        if args.action == "downgrade":
            downgrade(args.revision)
        else:
            upgrade(getattr(args, "revision", "head"))
    except Exception as e:
        print(f"✗ Migration failed: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
