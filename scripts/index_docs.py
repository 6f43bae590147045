import argparse
import asyncio
import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from support_ai.cms.client import ContentstackClient
from support_ai.embeddings.embedder import Embedder
from support_ai.indexing.sync import DocumentIndexer
from support_ai.vectors import build_vector_store


async def main(reset: bool) -> int:
    print("Initializing clients...")
    vector_store = build_vector_store()

    if reset:
        # Recovery path for an index created with the wrong dimension
        print(f"Resetting index {vector_store.index_name}...")
        await vector_store.reset_index()
        print(f"Index recreated with dimension {vector_store.dimension}")

    indexer = DocumentIndexer(
        cms=ContentstackClient(),
        embedder=Embedder(),
        vector_store=vector_store,
    )

    print("Syncing CMS articles (this may take time)...")
    result = await indexer.sync_all()

    print(f"Synced {result.synced}/{result.total} articles.")
    for error in result.errors:
        print(f"  error: {error}")

    return 1 if result.errors else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Sync CMS articles into the vector index.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="delete and recreate the index before syncing",
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.reset)))
