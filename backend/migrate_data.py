#!/usr/bin/env python3
"""
Export, import and clear the saved forms stored by the form builder backend.

Usage:
    # Export saved forms to a JSON file
    python migrate_data.py export --output /path/to/forms.json

    # Import forms from a JSON file (appends; --replace overwrites)
    python migrate_data.py import --input /path/to/forms.json

    # Override MongoDB connection (optional)
    python migrate_data.py export --output forms.json --mongo-uri "mongodb://..." --db-name "mydb"
"""
import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient

from formbuilder.storage import MongoBlobStore, SavedFormsRepository, decode_forms

# Load environment variables
load_dotenv()

DEFAULT_STORAGE_KEY = "formBuilder_savedForms"


def get_mongo_config(mongo_uri=None, db_name=None):
    """Get MongoDB configuration from args or environment."""
    if not mongo_uri:
        mongo_uri = os.getenv("MONGO_URI")
    if not db_name:
        db_name = os.getenv("DB_NAME")

    if not mongo_uri or not db_name:
        raise ValueError(
            "MongoDB configuration not found. "
            "Set MONGO_URI and DB_NAME in .env file or use --mongo-uri and --db-name arguments."
        )

    return mongo_uri, db_name


def make_repository(mongo_uri, db_name):
    client = AsyncIOMotorClient(mongo_uri)
    collection = client[db_name][os.getenv("KV_COLLECTION", "kv")]
    return SavedFormsRepository(MongoBlobStore(collection), os.getenv("STORAGE_KEY", DEFAULT_STORAGE_KEY))


def merge_forms(existing, incoming):
    """Append incoming forms whose id is not already saved."""
    known = {f.id for f in existing}
    return existing + [f for f in incoming if f.id not in known]


async def export_forms(repository, output_file):
    forms = await repository.load()
    records = [f.to_record() for f in forms]
    Path(output_file).write_text(json.dumps(records, indent=2), encoding="utf-8")
    print(f"✓ Exported {len(records)} forms to: {output_file}")
    return 0


async def import_forms(repository, input_file, replace=False):
    try:
        incoming = decode_forms(Path(input_file).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        print(f"ERROR: Cannot read forms from {input_file}: {e}")
        return 1

    forms = incoming if replace else merge_forms(await repository.load(), incoming)
    await repository.save(forms)
    print(f"✓ Imported {len(incoming)} forms ({len(forms)} saved in total)")
    return 0


async def clear_forms(repository):
    await repository.clear()
    print("✓ Saved forms cleared")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Export and import saved forms of the form builder backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python migrate_data.py export --output ./forms_20240101.json
  python migrate_data.py import --input ./forms_20240101.json --replace
  python migrate_data.py clear
        """
    )
    parser.add_argument("--mongo-uri", help="MongoDB URI (overrides .env)")
    parser.add_argument("--db-name", help="Database name (overrides .env)")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    export_parser = subparsers.add_parser("export", help="Write saved forms to a JSON file")
    export_parser.add_argument("--output", required=True, help="Output JSON file")

    import_parser = subparsers.add_parser("import", help="Load forms from a JSON file")
    import_parser.add_argument("--input", required=True, help="Input JSON file")
    import_parser.add_argument("--replace", action="store_true",
                               help="Replace saved forms instead of appending (WARNING: data loss)")

    subparsers.add_parser("clear", help="Delete all saved forms")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    try:
        mongo_uri, db_name = get_mongo_config(args.mongo_uri, args.db_name)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1

    repository = make_repository(mongo_uri, db_name)

    if args.command == "export":
        return asyncio.run(export_forms(repository, args.output))
    elif args.command == "import":
        return asyncio.run(import_forms(repository, args.input, args.replace))
    elif args.command == "clear":
        return asyncio.run(clear_forms(repository))
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
