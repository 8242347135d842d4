"""CLI tool for managing the registered people gallery."""
import argparse
import asyncio
import sys
from typing import List, Optional

from app.core.config import settings
from app.core.container import build_gallery_store
from app.core.exceptions import GalleryStoreError, IdentityNotFoundError, InvalidInputError
from app.core.logging import get_logger, setup_logging
from app.domain.interfaces.storage.gallery_store import GalleryStore
from app.infrastructure.database.gallery_store import SqlAlchemyGalleryStore
from app.infrastructure.storage.local.media_store import LocalMediaStore
from app.services.gallery import GalleryService

logger = get_logger(__name__)


async def _open_gallery(store: GalleryStore) -> GalleryService:
    if isinstance(store, SqlAlchemyGalleryStore):
        await store.init_schema()
    gallery = GalleryService(store, LocalMediaStore(settings.MEDIA_ROOT))
    await gallery.load()
    return gallery


async def list_people(gallery: GalleryService) -> None:
    people = gallery.list()
    if not people:
        print("No registered people")
        return
    for identity in people:
        print(
            f"{identity.id}  {identity.name:<30}  samples={len(identity.embeddings)}"
            f"  created={identity.created_at.isoformat(timespec='seconds')}"
        )


async def remove_person(gallery: GalleryService, identity_id: str) -> None:
    identity = await gallery.remove(identity_id)
    print(f"Removed {identity.name} ({identity.id})")


async def rename_person(gallery: GalleryService, identity_id: str, name: str) -> None:
    identity = await gallery.update(identity_id, name=name)
    print(f"Renamed {identity.id} to {identity.name}")


async def run_command(args: argparse.Namespace, store: Optional[GalleryStore] = None) -> int:
    """Execute a parsed command against the gallery.

    Returns:
        Process exit code
    """
    store = store or build_gallery_store()
    try:
        gallery = await _open_gallery(store)
        if args.command == "list":
            await list_people(gallery)
        elif args.command == "remove":
            await remove_person(gallery, args.identity_id)
        elif args.command == "rename":
            await rename_person(gallery, args.identity_id, args.name)
        return 0
    except IdentityNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1
    except InvalidInputError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 1
    except GalleryStoreError as e:
        logger.error("Gallery command failed", command=args.command, error=str(e))
        print(f"Gallery store error: {e}", file=sys.stderr)
        return 2
    finally:
        if isinstance(store, SqlAlchemyGalleryStore):
            await store.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage the registered people gallery")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List registered people")

    remove = subparsers.add_parser("remove", help="Delete a registered person")
    remove.add_argument("identity_id", help="Id of the person to delete")

    rename = subparsers.add_parser("rename", help="Change the display name of a person")
    rename.add_argument("identity_id", help="Id of the person to rename")
    rename.add_argument("name", help="New display name")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging()
    return asyncio.run(run_command(args))


if __name__ == "__main__":
    sys.exit(main())
