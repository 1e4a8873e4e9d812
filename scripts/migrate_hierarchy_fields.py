#!/usr/bin/env python3
"""
Hierarchy Field Migration

Older records store the hierarchy as milanShakaBhaga / valayaNagar /
khandaBhaga. This renames them to milan / valaya / khanda in the users and
referrers collections. Records that already have the canonical field keep
it; the legacy field is then just removed.

Usage: python scripts/migrate_hierarchy_fields.py [--dry-run]
"""
import argparse
import logging

from app.db.mongodb import get_collection, COLLECTIONS
from app.services.user_record_service import LEGACY_HIERARCHY_ALIASES

logger = logging.getLogger("migrate_hierarchy_fields")


def migrate_collection(collection, dry_run: bool = False) -> dict:
    """
    Migrate one collection.

    Returns:
        {legacy_field: number of documents touched}
    """
    counts = {}
    for legacy, canonical in LEGACY_HIERARCHY_ALIASES.items():
        rename_filter = {
            legacy: {"$exists": True},
            "$or": [{canonical: {"$exists": False}}, {canonical: None}, {canonical: ""}]
        }
        drop_filter = {legacy: {"$exists": True}}

        if dry_run:
            counts[legacy] = collection.count_documents(drop_filter)
            continue

        # $rename fails when the target exists, so clear empty canonical values first
        collection.update_many(
            {**rename_filter, canonical: {"$in": [None, ""]}},
            {"$unset": {canonical: ""}}
        )
        renamed = collection.update_many(rename_filter, {"$rename": {legacy: canonical}})
        dropped = collection.update_many(drop_filter, {"$unset": {legacy: ""}})
        counts[legacy] = renamed.modified_count + dropped.modified_count
    return counts


def main():
    parser = argparse.ArgumentParser(description="Rename legacy hierarchy fields")
    parser.add_argument("--dry-run", action="store_true", help="Only count affected documents")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    for name in ("users", "referrers"):
        counts = migrate_collection(get_collection(COLLECTIONS[name]), dry_run=args.dry_run)
        for legacy, count in counts.items():
            logger.info(f"{name}: {legacy} -> {LEGACY_HIERARCHY_ALIASES[legacy]}: {count} document(s)")


if __name__ == "__main__":
    main()
