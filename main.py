"""
CMDR Kael - Main Entry Point
Validates configuration, starts side servers and runs the bot.
"""

import asyncio
import signal
import sys

import config
import logger as log
from bot_instance import BotInstance
from health import start_health_server
from prometheus_metrics import metrics_manager


async def run_bot():
    """Run the bot until it disconnects or a shutdown signal arrives."""
    bot = BotInstance(config.DISCORD_TOKEN)
    loop = asyncio.get_running_loop()

    metrics_manager.metrics_port = config.METRICS_PORT
    metrics_manager.start_metrics_server()

    try:
        start_health_server(bot.services.kv, bot.services.heartbeat, loop, port=config.HEALTH_PORT)
        log.online(f"Health endpoint at http://localhost:{config.HEALTH_PORT}/health")
    except Exception as e:
        log.warn(f"Health server failed to start: {e}")

    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:  # Windows
            pass

    runner = asyncio.create_task(bot.start())
    waiter = asyncio.create_task(stop.wait())
    try:
        done, _ = await asyncio.wait({runner, waiter}, return_when=asyncio.FIRST_COMPLETED)
        if runner in done and runner.exception() is not None:
            log.error(f"Bot stopped: {runner.exception()}")
    finally:
        log.info("Shutting down...")
        waiter.cancel()
        await bot.close()
        if not runner.done():
            runner.cancel()
            try:
                await runner
            except (asyncio.CancelledError, Exception):
                pass
        log.ok("Shutdown complete")


def main():
    log.startup("CMDR Kael starting...")
    missing = config.validate_env()
    if missing:
        log.error(f"Missing required env vars: {', '.join(missing)}")
        sys.exit(1)
    log.divider()
    asyncio.run(run_bot())


# --- Entry Point ---

if __name__ == "__main__":
    main()
