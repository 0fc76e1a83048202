"""Entry point for NewsReadr: python -m newsreadr"""

import asyncio
import logging

from newsreadr.config import Config, load_or_create, sync_store
from newsreadr.database import Database
from newsreadr.embeddings import OllamaEmbedder
from newsreadr.ingestion import Ingester
from newsreadr.lifecycle import Lifecycle
from newsreadr.models import Item
from newsreadr.raindrop import RaindropClient, RaindropError
from newsreadr.scoring import Scorer

logger = logging.getLogger("newsreadr")

HELP = """Commands:
  l        list unread items
  <n>      show item n, then mark it read and delete it
  s <n>    save item n to Raindrop.io
  f        fetch new items from feeds
  c        remove read and expired items
  q        quit
"""


def format_items(items: list[Item]) -> str:
    lines = []
    for n, item in enumerate(items, start=1):
        lines.append(
            f"{n:3d}. [{item.relevance_score:.2f}] {item.title}"
            f"  ({item.published_at:%b %d, %Y})"
        )
    return "\n".join(lines) or "No unread items."


async def refresh_loop(lifecycle: Lifecycle, interval: float) -> None:
    """Refresh feeds periodically until cancelled."""
    logger.info("Refresher started (interval: %ds)", interval)

    while True:
        try:
            await lifecycle.refresh()
        except Exception as e:
            logger.error("Refresh cycle failed: %s", e)

        await asyncio.sleep(interval)


async def command_loop(lifecycle: Lifecycle, raindrop: RaindropClient | None) -> None:
    """Run the interactive command loop."""
    print("NewsReadr ready! Type ? for help (Ctrl+C to quit).\n")
    items = lifecycle.working_set()
    print(format_items(items))

    while True:
        try:
            line = (await asyncio.to_thread(input, "\n> ")).strip()
        except EOFError:
            break

        if not line:
            continue
        cmd, _, arg = line.partition(" ")

        if cmd == "q":
            break
        if cmd == "?":
            print(HELP)
        elif cmd == "l":
            items = lifecycle.working_set()
            print(format_items(items))
        elif cmd == "f":
            summary = await lifecycle.refresh()
            print(f"Fetched {summary.new_items} new items")
            for url, error in summary.failed_feeds.items():
                print(f"  ! {url}: {error}")
            items = lifecycle.working_set()
            print(format_items(items))
        elif cmd == "c":
            items = lifecycle.housekeeping()
            print(format_items(items))
        elif cmd == "s":
            item = _pick_current(lifecycle, items, arg)
            if item is None:
                continue
            if raindrop is None:
                print("Raindrop is not configured.")
                continue
            try:
                raindrop.save_item(item)
                print("Saved to Raindrop.io")
            except RaindropError as e:
                print(f"Error: {e}")
        else:
            item = _pick_current(lifecycle, items, cmd)
            if item is None:
                continue
            print(f"\n{item.title}\n{item.url}\n\n{item.body or item.summary}\n")
            lifecycle.consume(item.id)
            items = lifecycle.working_set()
            print("Item marked as read")


def _pick(items: list[Item], arg: str) -> Item | None:
    try:
        index = int(arg) - 1
    except ValueError:
        print("Unknown command. Type ? for help.")
        return None
    if not 0 <= index < len(items):
        print("No such item.")
        return None
    return items[index]


def _pick_current(lifecycle: Lifecycle, items: list[Item], arg: str) -> Item | None:
    """Pick from the listed items, refusing ones purged since listing."""
    item = _pick(items, arg)
    if item is None:
        return None
    if item.id not in {current.id for current in lifecycle.working_set()}:
        print("Item is no longer available. Type l to list again.")
        return None
    return item


def build(cfg: Config, db: Database) -> tuple[Lifecycle, OllamaEmbedder, RaindropClient | None]:
    """Wire the pipeline components around one store."""
    embedder = OllamaEmbedder(host=cfg.ollama.host, model=cfg.ollama.model)
    lifecycle = Lifecycle(
        db,
        Ingester(db),
        Scorer(db, embedder),
        max_age=cfg.ui.max_age,
    )
    raindrop = RaindropClient(cfg.raindrop.api_token) if cfg.raindrop.api_token else None
    return lifecycle, embedder, raindrop


async def main() -> None:
    """Initialize and run NewsReadr."""
    cfg = load_or_create()

    db = Database(cfg.database.path)
    db.connect()
    sync_store(db, cfg)

    lifecycle, embedder, raindrop = build(cfg, db)
    if not embedder.health_check():
        logger.warning("Ollama is not available; items will not be scored")

    refresher = asyncio.create_task(refresh_loop(lifecycle, cfg.ui.refresh_seconds))

    try:
        await command_loop(lifecycle, raindrop)
    except KeyboardInterrupt:
        print("\nGoodbye!")
    finally:
        refresher.cancel()
        try:
            await refresher
        except asyncio.CancelledError:
            pass
        embedder.close()
        if raindrop is not None:
            raindrop.close()
        db.close()


def run() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    asyncio.run(main())


if __name__ == "__main__":
    run()
