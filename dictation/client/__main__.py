"""
Record from the default microphone and dictate into a running server.

    python -m dictation.client --token <token>

Press Enter to stop; the formatted text is printed once the server has completed it.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from dictation.client.api import HttpSliceApi
from dictation.client.audio import MicrophoneSource
from dictation.client.session import SessionStatus, TranscriptionSession
from dictation.config import get_settings
from dictation.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="dictation-record", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--base-url", default=settings.CLIENT_BASE_URL, help="Server URL")
    parser.add_argument("--token", required=True, help="Access token issued for your account")
    parser.add_argument("--slice-ms", type=int, default=settings.SLICE_MS, help="Slice length in milliseconds")
    return parser.parse_args(argv)


def _print_text(text: str) -> None:
    print(f"\r{text}", flush=True)


def _print_status(status: SessionStatus) -> None:
    if status.last_error:
        logger.warning("Error: %s", status.last_error)
    elif status.formatting:
        logger.info("Formatting...")


async def _run(args: argparse.Namespace) -> int:
    async with HttpSliceApi(base_url=args.base_url, token=args.token) as api:
        session = TranscriptionSession(
            MicrophoneSource(),
            api,
            slice_ms=args.slice_ms,
            on_text=_print_text,
            on_status=_print_status,
        )
        async with session:
            await session.start()
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, input, "Recording. Press Enter to stop.\n")
            await session.stop()
            await session.wait_idle()
            print("\n" + session.merged_text)
            return 1 if session.status.last_error else 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = _parse_args(argv)
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
