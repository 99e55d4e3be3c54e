from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import Any

from aiohttp import web
from dotenv import load_dotenv

from .bot import ClearwaterBot
from .config import load_settings
from .logging_setup import setup_logging

log = logging.getLogger("clearwater.render")

SERVICE_NAME = "clearwater-staff"


def build_health_app(bot: Any) -> web.Application:
    """Liveness on / and /healthz; /readyz answers 503 until role checks can succeed."""
    resolver = bot.role_resolver

    def _status() -> dict[str, Any]:
        return {"ok": True, "service": SERVICE_NAME, "directory": resolver.state.value}

    async def health(_: web.Request) -> web.Response:
        return web.json_response(_status())

    async def ready(_: web.Request) -> web.Response:
        return web.json_response(_status(), status=200 if resolver.is_ready else 503)

    app = web.Application()
    app.router.add_get("/", health)
    app.router.add_get("/healthz", health)
    app.router.add_get("/readyz", ready)
    return app


async def _serve_health(bot: ClearwaterBot, port: int) -> web.AppRunner:
    runner = web.AppRunner(build_health_app(bot))
    await runner.setup()
    await web.TCPSite(runner, "0.0.0.0", port).start()
    log.info("Health server listening on 0.0.0.0:%s", port)
    return runner


def _install_stop_signals(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass


async def _run_bot(bot: ClearwaterBot, token: str, stop: asyncio.Event) -> None:
    async with bot:
        bot_task = asyncio.create_task(bot.start(token), name="clearwater-bot")
        stop_task = asyncio.create_task(stop.wait(), name="clearwater-stop")
        await asyncio.wait({bot_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)

        if stop.is_set():
            log.info("Shutdown signal received; closing bot")
            await bot.close()
        stop_task.cancel()

        if bot_task.done() and not bot_task.cancelled() and bot_task.exception() is not None:
            raise bot_task.exception()


async def main_async() -> None:
    load_dotenv()
    settings = load_settings()
    setup_logging(settings.log_level)

    bot = ClearwaterBot(settings)
    runner = await _serve_health(bot, int(os.getenv("PORT", "10000")))

    # Render sends SIGTERM on deploy and stop.
    stop = asyncio.Event()
    _install_stop_signals(stop)
    try:
        await _run_bot(bot, settings.token, stop)
    finally:
        await runner.cleanup()


def main() -> None:
    asyncio.run(main_async())


if __name__ == "__main__":
    main()
