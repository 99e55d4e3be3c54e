from __future__ import annotations

import logging
from typing import Optional

import discord
from discord.ext import commands

from .models import Principal
from .utils import error_embed, info_embed, principal_from_interaction, success_embed


class BaseCog(commands.Cog):
    """Base class for portal cogs: per-cog logger and ephemeral reply helpers."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot
        self.log = logging.getLogger(f"clearwater.cog.{self.__class__.__name__.lower()}")

    async def cog_load(self) -> None:
        self.log.info("Loaded %s", self.__class__.__name__)

    async def cog_unload(self) -> None:
        self.log.info("Unloaded %s", self.__class__.__name__)

    async def begin(self, interaction: discord.Interaction) -> Optional[Principal]:
        """Defer privately and return the caller as a Principal.

        Role lookups may take seconds, so every portal command defers before
        it authorizes.
        """
        await interaction.response.defer(ephemeral=True, thinking=True)
        return principal_from_interaction(interaction)

    async def reply(self, interaction: discord.Interaction, *embeds: discord.Embed) -> None:
        await interaction.followup.send(embeds=list(embeds), ephemeral=True)

    def error_embed(self, message: str) -> discord.Embed:
        return error_embed(message)

    def success_embed(self, message: str) -> discord.Embed:
        return success_embed(message)

    def info_embed(self, message: str) -> discord.Embed:
        return info_embed(message)
