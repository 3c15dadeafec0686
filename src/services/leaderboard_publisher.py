from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import discord

from src.db.repo.leaderboard_posts_repo import LeaderboardPostsRepository
from src.domain.errors import DataUnavailable
from src.domain.models import PeriodScope
from src.platforms.discord.leaderboard_embeds import build_leaderboard_embed
from src.services.leaderboard_service import LeaderboardService
from src.services.scopes import parse_scope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaderboardConfig:
    platform: str
    channel_id: int
    window_size: int = 50
    debounce_seconds: float = 10.0


class LeaderboardPublisher:
    """
    One-message leaderboard panel with a period dropdown:
      - All Time (default)
      - This Month
      - This Week

    Uses leaderboard_posts to persist the message ID across restarts.
    """

    BOARD_KEY = "champions_dropdown_v1"

    def __init__(
        self,
        *,
        config: LeaderboardConfig,
        leaderboard: LeaderboardService,
        posts_repo: LeaderboardPostsRepository,
    ) -> None:
        self._config = config
        self._leaderboard = leaderboard
        self._posts_repo = posts_repo

        self._bot: Optional[discord.Client] = None
        self._lock = asyncio.Lock()

        self._pending_task: Optional[asyncio.Task] = None

    def set_bot(self, bot: discord.Client) -> None:
        self._bot = bot
        logger.info("LeaderboardPublisher attached to bot. Target channel_id=%s", self._config.channel_id)

    def build_persistent_view(self) -> discord.ui.View:
        return LeaderboardDropdownView(publisher=self)

    def schedule_refresh(self) -> None:
        """
        Debounced refresh: update debounce_seconds after the LAST change.
        Repeated calls cancel the pending refresh and reschedule.
        """
        if not self._bot:
            logger.debug("LeaderboardPublisher.schedule_refresh called before a bot was attached")
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("LeaderboardPublisher.schedule_refresh: no running loop")
            return

        if self._pending_task and not self._pending_task.done():
            self._pending_task.cancel()

        delay = float(self._config.debounce_seconds)
        logger.info("Leaderboard refresh scheduled in %.1fs", delay)

        async def runner() -> None:
            try:
                await asyncio.sleep(delay)
                await self.refresh_now()
            except asyncio.CancelledError:
                # a newer change rescheduled the refresh
                return
            except Exception:
                logger.exception("LeaderboardPublisher debounced refresh crashed")

        self._pending_task = loop.create_task(runner())

    async def build_embed(self, tab: str | PeriodScope = PeriodScope.ALL) -> discord.Embed:
        snapshot = await self._leaderboard.get_leaderboard(
            scope=parse_scope(tab),
            window_size=self._config.window_size,
        )
        return build_leaderboard_embed(snapshot, show_caller_card=False)

    async def refresh_now(self, tab: str | PeriodScope = PeriodScope.ALL) -> None:
        async with self._lock:
            if not self._bot:
                logger.warning("LeaderboardPublisher.refresh_now called but bot is not set.")
                return

            channel = self._bot.get_channel(self._config.channel_id)
            if channel is None:
                try:
                    channel = await self._bot.fetch_channel(self._config.channel_id)
                except (discord.Forbidden, discord.NotFound, discord.HTTPException):
                    logger.exception("Failed to fetch leaderboard channel")
                    return

            if not isinstance(channel, (discord.TextChannel, discord.Thread)):
                logger.warning("Target leaderboard channel is not a text channel/thread: %r", channel)
                return

            try:
                embed = await self.build_embed(tab)
            except DataUnavailable:
                # keep the last complete panel rather than posting a partial one
                logger.exception("Leaderboard data unavailable; panel not updated")
                return

            msg_id = await self._upsert_single_message(channel=channel, embed=embed)
            logger.info("Leaderboard message updated (message_id=%s)", msg_id)

    async def _upsert_single_message(
        self,
        *,
        channel: discord.TextChannel | discord.Thread,
        embed: discord.Embed,
    ) -> int:
        platform = self._config.platform
        channel_id_str = str(self._config.channel_id)
        view = self.build_persistent_view()

        msg_id = await self._posts_repo.get_message_id(
            platform=platform,
            channel_id=channel_id_str,
            board_key=self.BOARD_KEY,
        )

        if msg_id:
            try:
                msg = await channel.fetch_message(msg_id)
                await msg.edit(embed=embed, view=view)
                return msg.id
            except discord.NotFound:
                logger.warning("Leaderboard message %s is gone; will recreate.", msg_id)
                await self._posts_repo.forget(platform=platform, channel_id=channel_id_str, board_key=self.BOARD_KEY)
            except (discord.Forbidden, discord.HTTPException):
                logger.warning("Leaderboard message exists but could not be edited; will recreate.")

        sent = await channel.send(embed=embed, view=view)
        await self._posts_repo.upsert_message_id(
            platform=platform,
            channel_id=channel_id_str,
            board_key=self.BOARD_KEY,
            message_id=sent.id,
        )
        return sent.id


class LeaderboardDropdown(discord.ui.Select):
    def __init__(self, publisher: LeaderboardPublisher) -> None:
        self._publisher = publisher
        options = [
            discord.SelectOption(label="All Time", value=PeriodScope.ALL.value, emoji="🏆", description="Every badge and quest"),
            discord.SelectOption(label="This Month", value=PeriodScope.MONTH.value, emoji="🗓️", description="Since the 1st (UTC)"),
            discord.SelectOption(label="This Week", value=PeriodScope.WEEK.value, emoji="📅", description="Since Monday (UTC)"),
        ]
        super().__init__(
            placeholder="View leaderboard…",
            min_values=1,
            max_values=1,
            options=options,
            custom_id="leaderboard:period:v1",
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer()
        try:
            embed = await self._publisher.build_embed(self.values[0])
        except DataUnavailable:
            logger.exception("Leaderboard data unavailable for dropdown")
            await interaction.followup.send("Leaderboard is unavailable right now, try again shortly.", ephemeral=True)
            return
        try:
            await interaction.message.edit(embed=embed, view=self.view)  # type: ignore[union-attr]
        except discord.HTTPException:
            logger.warning("Failed to edit leaderboard panel from dropdown", exc_info=True)


class LeaderboardDropdownView(discord.ui.View):
    def __init__(self, publisher: LeaderboardPublisher) -> None:
        super().__init__(timeout=None)
        self.add_item(LeaderboardDropdown(publisher))
