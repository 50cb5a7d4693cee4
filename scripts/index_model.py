"""
Create the Elasticsearch index of a searchable model and bulk index its rows.

Usage:
    python scripts/index_model.py --model myapp.models:Post
    python scripts/index_model.py --model myapp.models:Post --chunk-size 1000
    python scripts/index_model.py --model myapp.models:Post --no-import
    python scripts/index_model.py --model myapp.models:Post --recreate
"""

import argparse
import asyncio
import importlib
import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from search_sync.config import Settings
from search_sync.core.exceptions import SearchSyncError
from search_sync.db.session import create_engine_from_settings, create_session_factory
from search_sync.documents.searchable import validate_searchable
from search_sync.engine.client import SearchEngineClient
from search_sync.indexer import DEFAULT_CHUNK_SIZE, import_records
from search_sync.service import SearchSyncService


def load_model(path: str) -> type:
    """Resolve ``package.module:ClassName`` to a searchable class."""
    module_name, _, class_name = path.partition(":")
    if not module_name or not class_name:
        raise SystemExit(f"Model must be given as module:Class, got {path!r}")

    try:
        model = getattr(importlib.import_module(module_name), class_name)
    except (ImportError, AttributeError):
        raise SystemExit(f"Model [{path}] not found.")

    try:
        validate_searchable(model)
    except SearchSyncError as exc:
        raise SystemExit(f"Model [{path}] is not searchable: {exc}")
    return model


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--model", required=True, help="Searchable model as module:Class")
    parser.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE,
                        help="Records indexed per bulk request (default: %(default)s)")
    parser.add_argument("--no-import", action="store_true",
                        help="Only create the index, do not index any records")
    parser.add_argument("--recreate", action="store_true",
                        help="Delete the index first so mapping changes take effect")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)
    if args.chunk_size <= 0:
        print("Chunk size must be a positive number.")
        return 1

    model = load_model(args.model)
    cfg = Settings()
    index = model.search_index

    engine = create_engine_from_settings(cfg)
    session_factory = create_session_factory(engine)

    async with SearchEngineClient.from_settings(cfg) as client:
        service = SearchSyncService(client)

        try:
            if args.recreate:
                print(f"Recreating Elasticsearch index [{index}]...")
                await service.recreate_index(model)
            elif await client.index_exists(index):
                print(f"Index [{index}] already exists.")
            else:
                print(f"Creating Elasticsearch index [{index}]...")
                await service.create_index(model)
                print(f"Index [{index}] created successfully.")

            if args.no_import:
                print("Index creation completed. No documents indexed.")
                return 0

            def progress(done: int, total: int) -> None:
                print(f"Indexed {done}/{total} records...")

            report = await import_records(
                service,
                session_factory,
                model,
                chunk_size=args.chunk_size,
                create_index=False,
                on_progress=progress,
            )
        except SearchSyncError as exc:
            print(f"Indexing failed: {exc}")
            return 1
        finally:
            await engine.dispose()

    if report.total == 0:
        print("No records found. Nothing to index.")
        return 0

    for failure in report.failed:
        print(f"  failed id={failure.id} status={failure.status}: {failure.error}")

    print(
        f"Elasticsearch bulk indexing completed: {report.indexed}/{report.total} indexed, "
        f"{report.failed_count} failed."
    )
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
