"""
Bot composition for the Emeralds Killfeed path repair engine.

One cache, one statistics object, one resolver and one monitor are built here and
shared by reference with the path repair cog.
"""
import logging

import discord
from discord.ext import commands
from motor.motor_asyncio import AsyncIOMotorClient

import config
from models.server_repository import ServerRepository
from utils.path_cache import PathCache
from utils.path_monitor import PathHealthMonitor
from utils.path_resolver import PathResolver
from utils.path_validator import RemotePathValidator
from utils.repair_stats import RepairStatistics
from utils.sftp import SFTPTransport

logger = logging.getLogger(__name__)

EXTENSIONS = ["cogs.path_repair"]


class PvPBot(commands.Bot):
    """Discord bot owning the database connection and path repair components"""

    def __init__(self):
        intents = discord.Intents.default()
        super().__init__(command_prefix="!", intents=intents)
        self.mongo_client = None
        self.db = None
        self.server_repository = None
        self.sftp_transport = None
        self.path_cache = None
        self.path_resolver = None
        self.path_monitor = None

    async def setup_hook(self) -> None:
        self.mongo_client = AsyncIOMotorClient(config.MONGODB_URI)
        self.db = self.mongo_client[config.MONGODB_DB]
        logger.info(f"Using MongoDB database '{config.MONGODB_DB}'")

        self.server_repository = ServerRepository(self.db)
        self.sftp_transport = SFTPTransport(
            connect_timeout=config.SFTP_CONNECT_TIMEOUT,
            operation_timeout=config.SFTP_OPERATION_TIMEOUT,
        )
        self.path_cache = PathCache()
        self.path_resolver = PathResolver(
            self.server_repository,
            RemotePathValidator(self.sftp_transport),
            self.path_cache,
            RepairStatistics(),
        )
        self.path_monitor = PathHealthMonitor(
            self.path_resolver,
            self.server_repository,
            bot=self,
            interval_minutes=config.PATH_MONITOR_INTERVAL_MINUTES,
            initial_delay=config.PATH_MONITOR_INITIAL_DELAY_SECONDS,
            stop_grace_period=config.PATH_MONITOR_STOP_GRACE_SECONDS,
        )

        for extension in EXTENSIONS:
            await self.load_extension(extension)
            logger.info(f"Loaded extension {extension}")

        synced = await self.tree.sync()
        logger.info(f"Synced {len(synced)} application commands")

    async def close(self) -> None:
        # Bot.close unloads extensions, which stops the path monitor
        await super().close()
        if self.mongo_client is not None:
            self.mongo_client.close()

    async def on_ready(self):
        logger.info(f"Logged in as {self.user} ({len(self.guilds)} guilds)")


def main() -> int:
    """Run the bot until it is stopped

    Returns:
        Process exit code
    """
    if not config.DISCORD_TOKEN:
        logger.error("DISCORD_TOKEN is not set")
        return 1

    bot = PvPBot()
    bot.run(config.DISCORD_TOKEN, log_handler=None)
    return 0
