from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from .constants import ERROR_MESSAGES
from .errors import AuthenticationMissing, AuthorizationDenied, InvalidLogRequest
from .utils import error_embed, safe_response

log = logging.getLogger("clearwater.error_handlers")


class ErrorHandler(commands.Cog):
    """Centralized error handling for application commands."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot
        self._previous_handler = None

    async def cog_load(self) -> None:
        self._previous_handler = self.bot.tree.on_error
        self.bot.tree.on_error = self.on_app_command_error

    async def cog_unload(self) -> None:
        if self._previous_handler is not None:
            self.bot.tree.on_error = self._previous_handler

    async def on_app_command_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError,
    ) -> None:
        original = error.original if isinstance(error, app_commands.CommandInvokeError) else error

        if isinstance(original, AuthenticationMissing):
            await safe_response(interaction, embed=error_embed(ERROR_MESSAGES["unauthenticated"]))
            return

        if isinstance(original, AuthorizationDenied):
            await safe_response(
                interaction,
                embed=error_embed(f"{ERROR_MESSAGES['access_denied']} Required: {original.tier.label}."),
            )
            return

        if isinstance(original, InvalidLogRequest):
            await safe_response(interaction, embed=error_embed(f"{ERROR_MESSAGES['invalid_request']} {original}"))
            return

        command = interaction.command.qualified_name if interaction.command else "unknown"
        log.exception("Unexpected error in app command %s", command, exc_info=original)
        await safe_response(interaction, embed=error_embed(ERROR_MESSAGES["unexpected"]))


async def setup_error_handlers(bot: commands.Bot) -> None:
    await bot.add_cog(ErrorHandler(bot))
