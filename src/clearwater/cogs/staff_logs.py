from __future__ import annotations

from typing import Optional, Sequence

import discord
from discord import app_commands
from discord.ext import commands

from ..base_cog import BaseCog
from ..constants import ERROR_MESSAGES, STAFF_ACTION_KINDS
from ..models import CompletionResult, DeletionResult, LogEntry
from ..services.portal import StaffPortal
from ..utils import activity_embed, log_entries_embed, verdict_embed

ACTION_CHOICES = [app_commands.Choice(name=kind, value=kind) for kind in STAFF_ACTION_KINDS]


class StaffLogsCog(BaseCog):
    """Staff moderation log, activity review and tier access commands."""

    logs_group = app_commands.Group(name="log", description="Staff moderation log")

    def __init__(self, bot: commands.Bot) -> None:
        super().__init__(bot)
        self.portal: StaffPortal = getattr(bot, "staff_portal")

    async def _reply_with_listing(
        self, interaction: discord.Interaction, notice: discord.Embed, entries: Sequence[LogEntry]
    ) -> None:
        # Mutations answer with the refreshed listing so the caller sees the new state.
        await self.reply(interaction, notice, log_entries_embed(entries, reserve=len(notice)))

    @logs_group.command(name="create", description="Record a moderation action against a player")
    @app_commands.describe(
        target_name="Player name; repeat entries for the same name escalate",
        action="Kind of action taken",
        reason="Why the action was taken",
        target_id="Optional external id for the player",
    )
    @app_commands.choices(action=ACTION_CHOICES)
    async def create(
        self,
        interaction: discord.Interaction,
        target_name: str,
        action: app_commands.Choice[str],
        reason: str,
        target_id: Optional[str] = None,
    ) -> None:
        principal = await self.begin(interaction)
        submission = await self.portal.create_log(
            principal,
            target_name=target_name,
            action_kind=action.value,
            reason=reason,
            target_id=target_id,
        )
        entry = submission.entry
        message = f"Logged {entry.action_kind} #{entry.id} for **{entry.target_name}**."
        if submission.escalation is not None:
            bolo = submission.escalation
            message += (
                f"\n📌 {entry.target_name} reached {bolo.prior_offense_count} entries; "
                f"ban BOLO #{bolo.id} is now pinned."
            )
        entries = await self.portal.list_logs(principal)
        await self._reply_with_listing(interaction, self.success_embed(message), entries)

    @logs_group.command(name="list", description="Show the moderation log, pinned entries first")
    @app_commands.describe(limit="How many entries to show")
    async def list_logs(self, interaction: discord.Interaction, limit: app_commands.Range[int, 1, 25] = 25) -> None:
        principal = await self.begin(interaction)
        entries = await self.portal.list_logs(principal, limit=limit)
        await self.reply(interaction, log_entries_embed(entries))

    @logs_group.command(name="complete", description="Convert an active ban BOLO into a ban")
    @app_commands.describe(log_id="Id of the BOLO entry")
    async def complete(self, interaction: discord.Interaction, log_id: int) -> None:
        principal = await self.begin(interaction)
        result = await self.portal.complete_log(principal, log_id)
        if result is CompletionResult.COMPLETED:
            notice = self.success_embed(f"BOLO #{log_id} completed as a ban.")
        else:
            notice = self.error_embed(ERROR_MESSAGES["entry_unavailable"])
        await self._reply_with_listing(interaction, notice, await self.portal.list_logs(principal))

    @logs_group.command(name="delete", description="Delete a log entry (Human Resources)")
    @app_commands.describe(log_id="Id of the entry to delete")
    async def delete(self, interaction: discord.Interaction, log_id: int) -> None:
        principal = await self.begin(interaction)
        result = await self.portal.delete_log(principal, log_id)
        if result is DeletionResult.DELETED:
            notice = self.success_embed(f"Log #{log_id} deleted.")
        else:
            notice = self.error_embed(ERROR_MESSAGES["entry_unavailable"])
        # Human Resources may delete without holding Staff, so reply with their own view.
        await self._reply_with_listing(interaction, notice, await self.portal.review_logs(principal))

    @app_commands.command(name="activity", description="Review recent staff activity and the log (Human Resources)")
    async def activity(self, interaction: discord.Interaction) -> None:
        principal = await self.begin(interaction)
        activity = activity_embed(await self.portal.list_activity(principal))
        entries = await self.portal.review_logs(principal)
        await self.reply(interaction, activity, log_entries_embed(entries, reserve=len(activity)))

    @app_commands.command(name="cad", description="Open the dispatch (CAD) console")
    async def cad(self, interaction: discord.Interaction) -> None:
        principal = await self.begin(interaction)
        await self.portal.dispatch_console(principal)
        cad_url = getattr(getattr(self.bot, "settings", None), "cad_url", "")
        message = f"Dispatch console: {cad_url}" if cad_url else "Dispatch access confirmed."
        await self.reply(interaction, self.info_embed(message))

    @app_commands.command(name="access", description="Show which portal tiers you hold")
    async def access(self, interaction: discord.Interaction) -> None:
        principal = await self.begin(interaction)
        verdict = await self.portal.gate.verdict_for(principal)
        if principal is None or verdict is None:
            await self.reply(interaction, self.error_embed(ERROR_MESSAGES["unauthenticated"]))
            return
        await self.reply(interaction, verdict_embed(principal, verdict))


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(StaffLogsCog(bot))
