from __future__ import annotations

import logging
from typing import Any

import discord
from discord import app_commands

from src.domain.errors import DataUnavailable

logger = logging.getLogger(__name__)


async def _reply(interaction: discord.Interaction, text: str) -> None:
    if interaction.response.is_done():
        await interaction.followup.send(text, ephemeral=True)
    else:
        await interaction.response.send_message(text, ephemeral=True)


async def setup(bot: discord.Client) -> None:
    tree: app_commands.CommandTree = bot.tree  # type: ignore[attr-defined]

    @tree.error
    async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        original = getattr(error, "original", error)
        command = interaction.command.qualified_name if interaction.command else "?"

        if isinstance(original, DataUnavailable):
            logger.warning("/%s: achievement store unavailable: %s", command, original)
            text = "⚠️ The leaderboard is unavailable right now. Please try again in a moment."
        else:
            logger.error("Unhandled error in /%s", command, exc_info=original)
            text = "Something went wrong running that command."

        try:
            await _reply(interaction, text)
        except discord.HTTPException:
            logger.warning("Could not report error for /%s", command, exc_info=True)

    @bot.event
    async def on_error(event_method: str, /, *args: Any, **kwargs: Any) -> None:
        logger.exception("Unhandled exception in Discord event: %s", event_method)

    logger.info("Discord events registered (tree.error, on_error)")
