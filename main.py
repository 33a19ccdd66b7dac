"""
Emeralds Killfeed path repair bot.
Main entry point - runs the Discord bot with the path repair engine loaded.
"""
import sys
import logging
import traceback
import signal

import config

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler('bot.log')
    ]
)
logger = logging.getLogger('main')

# Set higher log level for some verbose libraries
logging.getLogger('discord.gateway').setLevel(logging.WARNING)
logging.getLogger('discord.client').setLevel(logging.WARNING)
logging.getLogger('discord.http').setLevel(logging.WARNING)
logging.getLogger('asyncssh').setLevel(logging.WARNING)


def signal_handler(signum, frame):
    sig_name = signal.Signals(signum).name
    logger.warning(f"Received signal {sig_name} ({signum})")
    if signum in (signal.SIGINT, signal.SIGTERM):
        logger.info("Bot stopping due to termination signal")
        sys.exit(0)


if __name__ == "__main__":
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info("Starting Emeralds Killfeed path repair bot")
    try:
        from bot import main as bot_main
        exit_code = bot_main()
        logger.info(f"Bot exited with code: {exit_code}")
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    except Exception as e:
        logger.error(f"Error starting bot: {e}", exc_info=True)
        logger.error(f"Traceback: {traceback.format_exc()}")
        sys.exit(1)
