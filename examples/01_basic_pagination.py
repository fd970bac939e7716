"""
Example 01: Basic Pagination
============================

Demonstrates the core PaginatingCache flow against an in-memory "remote"
conversation:
- Initializing a conversation (one fetch, shared by concurrent callers)
- Paging backwards until the start of the history
- Applying a live item without a fetch
- Counting how many requests actually reached the source

Run:
    uv run python examples/01_basic_pagination.py
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path when running directly
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


async def main() -> None:
    from postcache import (
        AfterPage,
        BeforePage,
        BetweenPage,
        CacheConfig,
        FetchedPage,
        Item,
        LatestPage,
        PaginatingCache,
        page_request,
    )

    print("=== postcache Basic Pagination Example ===\n")

    history = [
        Item(id=f"post_{n}", conversation_id="general", sequence_number=n, text=f"message {n}")
        for n in range(1, 301)
    ]
    fetches: list[str] = []

    async def fetch_page(
        request: LatestPage | BeforePage | AfterPage | BetweenPage,
    ) -> FetchedPage:
        fetches.append(request.kind)
        await asyncio.sleep(0.01)  # pretend to be a network call
        if isinstance(request, BeforePage):
            older = [
                i
                for i in history
                if i.seq < request.before or (request.inclusive and i.seq == request.before)
            ]
            return FetchedPage(items=older[-request.limit :], more=len(older) > request.limit)
        if isinstance(request, LatestPage):
            return FetchedPage(items=history[-request.limit :], more=len(history) > request.limit)
        raise NotImplementedError(request.kind)

    async with PaginatingCache(fetch_page, CacheConfig(initial_limit=100)) as cache:
        # Three views open the same conversation at once; only one fetch goes out.
        await asyncio.gather(*(cache.ensure_initialized("general") for _ in range(3)))
        print(f"Initialized with {len(fetches)} fetch(es)")

        latest = await cache.read(page_request("general", limit=5))
        print(f"Latest: {[i.id for i in latest.items]} (more={latest.more})")

        cursor = latest.items[0].seq
        pages = 0
        while True:
            page = await cache.read(page_request("general", before=cursor, limit=40))
            if not page.items:
                break
            pages += 1
            cursor = page.items[0].seq
        print(f"Paged back {pages} pages to sequence number {cursor}")

        window = cache.registry.get("general")
        print(f"Window holds {len(window)} items, complete={window.complete}")

        cache.upsert(
            Item(id="post_301", conversation_id="general", sequence_number=301, text="hi!")
        )
        newest = await cache.read(page_request("general", limit=1))
        print(f"Newest after live upsert: {newest.items[0].id}")

        print(f"\nRequests that reached the source: {len(fetches)} {fetches}")


if __name__ == "__main__":
    asyncio.run(main())
