#!/usr/bin/env python3

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import Optional

import uvicorn

from api.main import create_app
from clipboard import ClipboardBackend, get_clipboard_backend
from database.memory import MemoryHistoryStore
from database.redis_manager import RedisHistoryStore
from models.entry import ClipboardEntry
from services.clipboard_service import ClipboardManager
from services.settings import Settings

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


class ClipVaultApp:

    def __init__(
        self,
        use_redis: bool = True,
        api: bool = False,
        port: int = 3001,
        settings: Optional[Settings] = None,
    ):
        self.use_redis = use_redis
        self.api = api
        self.port = port
        self.settings = settings or Settings()
        self.backend: Optional[ClipboardBackend] = None
        self.store = None
        self.manager: Optional[ClipboardManager] = None
        self._server: Optional[uvicorn.Server] = None
        self._server_task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self.running = False

    async def _open_store(self):
        if self.use_redis:
            try:
                store = RedisHistoryStore()
                await store.connect()
                logger.info("Redis connected")
                return store
            except Exception as e:
                logger.warning(
                    f"Redis unavailable, keeping history in memory: {e}")
        return MemoryHistoryStore()

    def _on_entry(self, entry: ClipboardEntry):
        logger.info(f"Saved {entry.type.value}: {entry.id}")

    async def start(self):
        if self.running:
            return

        print("Starting ClipVault")
        self.running = True

        self.store = await self._open_store()
        self.backend = get_clipboard_backend(
            poll_interval=self.settings.get_int("poll-interval") / 1000)
        self.manager = ClipboardManager(self.backend, self.store, self.settings)
        self.manager.on_entry(self._on_entry)
        self.backend.start()

        await self.manager.load_language_detector()

        if self.api:
            config = uvicorn.Config(
                create_app(self.manager, self.store),
                host="127.0.0.1",
                port=self.port,
                log_level="warning",
            )
            self._server = uvicorn.Server(config)
            self._server_task = asyncio.create_task(self._server.serve())
            self._server_task.add_done_callback(lambda _: self.request_stop())
            logger.info(f"Control API on http://127.0.0.1:{self.port}")

        print("ClipVault running. Press Ctrl+C to stop")

    def request_stop(self):
        if self._stop_event is not None:
            self._stop_event.set()

    async def stop(self):
        if not self.running:
            return

        self.running = False

        if self._server is not None:
            self._server.should_exit = True
        if self._server_task is not None:
            try:
                await self._server_task
            except Exception as e:
                logger.warning(f"Control API stopped with error: {e}")

        if self.manager:
            self.manager.destroy()

        if self.backend:
            await self.backend.close()

        if self.store:
            try:
                await self.store.close()
            except Exception as e:
                logger.warning(f"Could not close history store: {e}")

        print("ClipVault stopped")

    async def run_forever(self):
        self._stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, self.request_stop)

        try:
            await self.start()
            await self._stop_event.wait()
            print("\nStopping...")
        finally:
            await self.stop()


def parse_args():
    parser = argparse.ArgumentParser(
        description="ClipVault - Clipboard history with paste-on-copy"
    )

    parser.add_argument(
        "--api",
        action="store_true",
        help="Serve the HTTP control API"
    )

    parser.add_argument(
        "-p", "--port",
        type=int,
        default=int(os.getenv("CLIPVAULT_API_PORT", "3001")),
        help="Control API port (default: 3001)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose debug logging"
    )

    parser.add_argument(
        "--no-redis",
        action="store_true",
        help="Keep clipboard history in memory instead of Redis"
    )

    return parser.parse_args()


def main():
    args = parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    app = ClipVaultApp(
        use_redis=not args.no_redis,
        api=args.api,
        port=args.port,
    )

    try:
        asyncio.run(app.run_forever())
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
