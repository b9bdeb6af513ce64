"""Command line entry for model sync and live recitation transcription."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import httpx

from recitekit.errors import RecitekitError
from recitekit.services.asset_sync import AssetSynchronizer, SyncProgress
from recitekit.services.manifest import ManifestResolver
from recitekit.services.session import RecitationSession
from recitekit.settings import get_settings

LOGGER = logging.getLogger("recitekit.cli")


def _print_progress(progress: SyncProgress) -> None:
    print(
        f"\rsync {progress.completed_units}/{progress.total_units} "
        f"({progress.fraction:.0%})",
        end="",
        flush=True,
    )


async def run_sync(repo: str, output: Path) -> None:
    settings = get_settings()
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        resolver = ManifestResolver(
            client, endpoint=settings.hub_endpoint, revision=settings.hub_revision
        )
        await AssetSynchronizer(client, resolver).sync(repo, output, _print_progress, weight=1.0)
    print()


async def run_listen(device: int | None) -> None:
    session = RecitationSession(get_settings())
    session.progress.subscribe(lambda value: print(f"\rloading {value:.0%}", end="", flush=True))
    session.transcript.subscribe(lambda text: text and print(f"\n{text}", flush=True))
    try:
        await session.load_model()
        print()
        await session.start(device)
        outcome = await session.scheduler.wait()
        if outcome is not None and outcome.failed:
            raise outcome.error
    finally:
        await session.close()


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Recitation transcription tools.")
    sub = parser.add_subparsers(dest="command", required=True)
    sync_cmd = sub.add_parser("sync", help="Mirror the model repository locally.")
    sync_cmd.add_argument("--repo", default=settings.model_repo)
    sync_cmd.add_argument(
        "--output",
        type=Path,
        default=settings.model_folder,
        help=f"Destination directory (default: {settings.model_folder}).",
    )
    listen_cmd = sub.add_parser("listen", help="Transcribe the microphone until Ctrl-C.")
    listen_cmd.add_argument("--device", type=int, default=None, help="Input device index.")
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.command == "sync":
            asyncio.run(run_sync(args.repo, args.output))
        else:
            asyncio.run(run_listen(args.device))
    except KeyboardInterrupt:
        return 130
    except RecitekitError as exc:
        LOGGER.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
