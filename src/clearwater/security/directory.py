from __future__ import annotations

import logging
from typing import Protocol

import discord

from ..errors import DirectoryUnavailable

log = logging.getLogger("clearwater.security.directory")


class MembershipDirectory(Protocol):
    """Source of truth for guild role membership."""

    async def has_role(self, guild_id: int, principal_id: str, role_id: int) -> bool:
        """Return whether the principal holds the role.

        Raises DirectoryUnavailable when the answer cannot be determined.
        """
        ...


class DiscordMembershipDirectory:
    """Answers role membership from the bot's view of a guild.

    Uses the gateway member cache when it has the member and falls back to a
    REST fetch otherwise.
    """

    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def _guild(self, guild_id: int) -> discord.Guild:
        guild = self._client.get_guild(int(guild_id))
        if guild is not None:
            return guild
        try:
            return await self._client.fetch_guild(int(guild_id))
        except discord.HTTPException as e:
            raise DirectoryUnavailable(f"guild {guild_id} unavailable: {e}") from e

    async def has_role(self, guild_id: int, principal_id: str, role_id: int) -> bool:
        try:
            member_id = int(principal_id)
        except (TypeError, ValueError):
            # Not a Discord snowflake, so it can never be a guild member.
            return False

        guild = await self._guild(guild_id)
        member = guild.get_member(member_id)
        if member is None:
            try:
                member = await guild.fetch_member(member_id)
            except discord.NotFound:
                return False
            except discord.HTTPException as e:
                raise DirectoryUnavailable(f"member lookup failed for {member_id}: {e}") from e
        return member.get_role(int(role_id)) is not None
