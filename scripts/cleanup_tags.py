"""Delete tags that no entity references any more.

Usage:
    python scripts/cleanup_tags.py [--db-url URL] [--dry-run]

Tag updates already clean up after themselves; run this after bulk deletes of host
entities, which leave join rows and tags behind for the host to remove.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Allow running from the project root without installing the package.
_ROOT_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_ROOT_DIR))

load_dotenv(_ROOT_DIR / ".env")

from polytag.db import make_engine, make_session_factory  # noqa: E402
from polytag.services.tag_store import TagStore  # noqa: E402


def run(db_url: str, dry_run: bool) -> int:
    """Return the number of orphaned tags found (dry run) or deleted."""
    engine = make_engine(db_url)
    db = make_session_factory(engine)()
    store = TagStore()
    try:
        if dry_run:
            n = store.count_orphans(db)
            print(f"DRY RUN: {n} orphaned tag(s) would be deleted.")
            return n
        n = store.cleanup_tags(db)
        db.commit()
        print(f"Deleted {n} orphaned tag(s).")
        return n
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Delete tags with no remaining links.")
    parser.add_argument(
        "--db-url",
        default=os.environ.get("DATABASE_URL"),
        help="Database URL (default: $DATABASE_URL)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Count orphaned tags without deleting them.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if not args.db_url:
        print("ERROR: no database URL; pass --db-url or set DATABASE_URL", file=sys.stderr)
        sys.exit(1)

    run(args.db_url, args.dry_run)


if __name__ == "__main__":
    main()
