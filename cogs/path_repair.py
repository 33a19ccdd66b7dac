"""
Path repair cog for the Emeralds Killfeed PvP Statistics Discord Bot.

This cog provides:
1. The background path health monitor (started on load, stopped on unload)
2. /pathrepair to repair one server or every server in the guild
3. /pathstats and /pathcache_clear for diagnostics
"""
import logging
from typing import Any, List, Optional

import discord
from discord import app_commands
from discord.ext import commands

from utils.path_candidates import PathCategory
from utils.path_resolver import ResolutionOutcome

logger = logging.getLogger(__name__)


class PathRepairCog(commands.Cog):
    """Admin commands and background monitoring for remote log paths"""

    def __init__(self, bot: Any):
        """Initialize the path repair cog

        Args:
            bot: Bot exposing ``server_repository``, ``sftp_transport``,
                ``path_resolver`` and ``path_monitor``
        """
        self.bot = bot
        self.repository = bot.server_repository
        self.transport = bot.sftp_transport
        self.resolver = bot.path_resolver
        self.monitor = bot.path_monitor

    async def cog_load(self):
        self.monitor.start()

    async def cog_unload(self):
        await self.monitor.stop()

    async def _find_server(self, guild_id: str, server: str):
        found = await self.repository.find_by_id(guild_id, server)
        if found is None:
            found = await self.repository.find_by_name(guild_id, server)
        return found

    @app_commands.command(
        name="pathrepair",
        description="Find and repair deathlogs/log paths for a server or the whole guild"
    )
    @app_commands.guild_only()
    @app_commands.default_permissions(administrator=True)
    async def path_repair_command(self, interaction: discord.Interaction,
                                  server: Optional[str] = None):
        """Repair remote paths

        Args:
            interaction: Discord interaction
            server: Server ID or name (optional, all servers when omitted)
        """
        await interaction.response.defer(ephemeral=True)
        guild_id = str(interaction.guild_id)

        try:
            if server:
                embed = await self._repair_one(guild_id, server)
            else:
                embed = await self._repair_guild(guild_id)
        except Exception as e:
            logger.error(f"Error in path repair command for guild {guild_id}: {e}", exc_info=True)
            embed = discord.Embed(
                title="Path Repair Failed",
                description="An internal error occurred while repairing paths.",
                color=discord.Color.red()
            )

        await interaction.followup.send(embed=embed, ephemeral=True)

    async def _repair_one(self, guild_id: str, server_ref: str) -> discord.Embed:
        server = await self._find_server(guild_id, server_ref)
        if server is None:
            return discord.Embed(
                title="Server Not Found",
                description=f"No server `{server_ref}` is configured for this guild.",
                color=discord.Color.red()
            )

        if not await self.transport.test_connection(server):
            return discord.Embed(
                title="Path Repair Results",
                description=f"Connection test failed for **{server.name or server.server_id}**.",
                color=discord.Color.red()
            )

        outcomes: List[ResolutionOutcome] = []
        for category in PathCategory:
            outcomes.append(await self.resolver.resolve(server, category))

        all_ok = all(outcome.success for outcome in outcomes)
        embed = discord.Embed(
            title="Path Repair Results",
            description=f"Path repair results for server: **{server.name or server.server_id}**",
            color=discord.Color.green() if all_ok else discord.Color.orange()
        )
        for outcome in outcomes:
            embed.add_field(name=outcome.category.label, value=format_outcome(outcome), inline=False)
        return embed

    async def _repair_guild(self, guild_id: str) -> discord.Embed:
        result = await self.resolver.fix_all_servers_for_guild(guild_id)
        if result["checked"] == 0:
            return discord.Embed(
                title="Path Repair Results",
                description="No servers found for this guild.",
                color=discord.Color.orange()
            )

        embed = discord.Embed(
            title="Path Repair Results",
            description="Path repair results for all servers",
            color=discord.Color.green()
        )
        embed.add_field(name="Checked", value=str(result["checked"]), inline=True)
        embed.add_field(name="Repaired", value=str(result["fixed"]), inline=True)
        return embed

    @app_commands.command(
        name="pathstats",
        description="Show path repair statistics"
    )
    @app_commands.guild_only()
    @app_commands.default_permissions(administrator=True)
    async def path_stats_command(self, interaction: discord.Interaction):
        embed = self._stats_embed(str(interaction.guild_id))
        await interaction.response.send_message(embed=embed, ephemeral=True)

    def _stats_embed(self, guild_id: str) -> discord.Embed:
        stats = self.resolver.stats
        embed = discord.Embed(
            title="Path Repair Status",
            description=self.resolver.get_statistics(),
            color=discord.Color.blue()
        )
        embed.add_field(name="Monitor Running", value="Yes" if self.monitor.is_running() else "No",
                        inline=True)
        embed.add_field(name="Sweeps Completed", value=str(stats.cycles_completed), inline=True)
        guild_entries = [entry for key, entry in self.resolver.cache.snapshot().items()
                         if key[0] == guild_id]
        embed.add_field(name="Cached Paths", value=str(len(guild_entries)), inline=True)
        if guild_entries:
            latest = max(entry.resolved_at for entry in guild_entries)
            embed.add_field(name="Last Validated",
                            value=latest.strftime("%Y-%m-%d %H:%M UTC"), inline=True)

        last_cycle = stats.last_cycle
        if last_cycle:
            embed.add_field(
                name="Last Sweep",
                value=(f"Checked {last_cycle['checked']}, fixed {last_cycle['fixed']} "
                       f"in {last_cycle['duration']:.1f}s"),
                inline=False
            )
        return embed

    @app_commands.command(
        name="pathcache_clear",
        description="Forget cached paths for this guild"
    )
    @app_commands.guild_only()
    @app_commands.default_permissions(administrator=True)
    async def path_cache_clear_command(self, interaction: discord.Interaction):
        removed = self.resolver.cache.clear_guild(str(interaction.guild_id))
        embed = discord.Embed(
            title="Cache Cleared",
            description=f"Removed {removed} cached path(s) for this guild.",
            color=discord.Color.green()
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)


def format_outcome(outcome: ResolutionOutcome) -> str:
    """Short user-facing summary of one resolution, no internal error detail"""
    original = f"`{outcome.original_path}`" if outcome.original_path else "not set"
    if not outcome.success:
        return (f"No valid path found after {len(outcome.candidates_tried)} candidate(s)\n"
                f"Current: {original}")
    if not outcome.changed:
        return f"OK: `{outcome.resolved_path}`"

    lines = [f"Repaired: {original} -> `{outcome.resolved_path}`"]
    if not outcome.persisted:
        lines.append("Warning: the new path could not be saved and will revert on restart")
    return "\n".join(lines)


async def setup(bot: Any) -> None:
    """Set up the path repair cog

    Args:
        bot: Discord bot instance with the path repair components attached
    """
    await bot.add_cog(PathRepairCog(bot))
