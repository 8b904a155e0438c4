from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from .client import DrawSyncClient
from .config import load_config
from .errors import DrawSyncError, RequestError
from .types import Phase


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


async def run(args: argparse.Namespace) -> None:
    settings = load_config(args.env_file)
    configure_logging(args.verbose)
    logger = logging.getLogger("drawsync.service")

    def on_change(previous: Phase, current: Phase) -> None:
        lifecycle = client.lifecycle
        if current is Phase.SPINNING and lifecycle.session is not None:
            session = lifecycle.session
            logger.info(
                "Spinning %d segments toward %s (rotation %.1f)",
                len(session.segments),
                session.target_prize.name,
                lifecycle.rotation,
            )
        elif current is Phase.RESOLVED and lifecycle.winner is not None:
            logger.info("Winner: %s -> %s", lifecycle.winner.person.name, lifecycle.winner.prize.name)

    def on_error(error: DrawSyncError) -> None:
        logger.error("Draw error: %s", error)

    client = DrawSyncClient(settings, on_change=on_change, on_error=on_error)
    try:
        if settings.host_password:
            try:
                await client.login(settings.host_password)
            except RequestError as exc:
                logger.error("Host login failed: %s", exc)
        await client.start()

        if args.participant is not None:
            if await client.wait_until_connected(settings.request_timeout_seconds):
                try:
                    await client.request_draw(args.participant)
                except RequestError:
                    logger.debug("Draw request for participant %s not accepted", args.participant)
            else:
                logger.error("Push channel not connected; draw not requested")

        await asyncio.Event().wait()
    finally:
        await client.close()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Live prize draw viewer")
    parser.add_argument("--env-file", type=str, default=None, help="Path to .env file with settings")
    parser.add_argument(
        "--participant", type=int, default=None, help="Request one draw for this participant id (host only)."
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging (default INFO)."
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        print("Viewer stopped by user.")


if __name__ == "__main__":
    main()
