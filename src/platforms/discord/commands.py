from __future__ import annotations

import logging
from typing import Any, Optional

import discord
from discord import app_commands

from src.domain.errors import ConflictError, DataUnavailable, NotFound
from src.domain.models import PeriodScope
from src.platforms.discord.leaderboard_embeds import bold_text, build_leaderboard_embed, build_rank_embed
from src.services.achievement_service import AchievementService, discord_profile_id
from src.services.leaderboard_service import LeaderboardService
from src.utils.text import normalize_display_name

logger = logging.getLogger(__name__)

UNAVAILABLE_TEXT = "⚠️ The leaderboard is unavailable right now. Please try again in a moment."

PERIOD_CHOICES = [
    app_commands.Choice(name="All Time", value=PeriodScope.ALL.value),
    app_commands.Choice(name="This Month", value=PeriodScope.MONTH.value),
    app_commands.Choice(name="This Week", value=PeriodScope.WEEK.value),
]


def _period(choice: Optional[app_commands.Choice[str]]) -> PeriodScope:
    return PeriodScope(choice.value) if choice else PeriodScope.ALL


def _avatar_url(user: discord.abc.User) -> str | None:
    avatar = getattr(user, "display_avatar", None)
    return str(avatar.url) if avatar else None


# =====================
# LEADERBOARD COMMANDS
# =====================
class LeaderboardCommands(app_commands.Group):
    def __init__(self, services: dict[str, Any]) -> None:
        super().__init__(name="leaderboard", description="Champions Board rankings")
        self.services = services

    def _get_leaderboard(self) -> LeaderboardService | None:
        s = self.services.get("leaderboard")
        return s if isinstance(s, LeaderboardService) else None

    @app_commands.command(name="top", description="Show the top of the Champions Board and your own rank")
    @app_commands.describe(period="Which period to rank")
    @app_commands.choices(period=PERIOD_CHOICES)
    async def top(self, interaction: discord.Interaction, period: Optional[app_commands.Choice[str]] = None) -> None:
        leaderboard = self._get_leaderboard()
        if leaderboard is None:
            await interaction.response.send_message("Leaderboard is not available.", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True)
        caller_id = discord_profile_id(interaction.user.id)
        try:
            snapshot = await leaderboard.get_leaderboard(scope=_period(period), caller_id=caller_id)
        except DataUnavailable:
            logger.exception("/leaderboard top failed")
            await interaction.followup.send(UNAVAILABLE_TEXT, ephemeral=True)
            return

        embed = build_leaderboard_embed(snapshot, caller_id=caller_id)
        await interaction.followup.send(embed=embed, ephemeral=True)

    @app_commands.command(name="rank", description="Show your rank and score, even outside the top list")
    @app_commands.describe(period="Which period to rank")
    @app_commands.choices(period=PERIOD_CHOICES)
    async def rank(self, interaction: discord.Interaction, period: Optional[app_commands.Choice[str]] = None) -> None:
        leaderboard = self._get_leaderboard()
        achievements = self.services.get("achievements")
        if leaderboard is None or not isinstance(achievements, AchievementService):
            await interaction.response.send_message("Leaderboard is not available.", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True)
        try:
            snapshot = await leaderboard.get_leaderboard(
                scope=_period(period),
                window_size=0,
                caller_id=discord_profile_id(interaction.user.id),
            )
            recent = []
            if snapshot.caller_entry is not None:
                recent = await achievements.recent_facts_discord(discord_user_id=interaction.user.id)
        except DataUnavailable:
            logger.exception("/leaderboard rank failed")
            await interaction.followup.send(UNAVAILABLE_TEXT, ephemeral=True)
            return

        await interaction.followup.send(embed=build_rank_embed(snapshot, recent=recent), ephemeral=True)

    @app_commands.command(name="refresh", description="Republish the leaderboard panel")
    async def refresh(self, interaction: discord.Interaction) -> None:
        publisher = self.services.get("leaderboard_publisher")
        if not publisher:
            await interaction.response.send_message("Leaderboard panel is not configured.", ephemeral=True)
            return

        await interaction.response.send_message("Refreshing leaderboard…", ephemeral=True)
        await publisher.refresh_now()
        await interaction.followup.send("✅ Leaderboard updated.", ephemeral=True)


# =====================
# QUEST COMMANDS
# =====================
class QuestsCommands(app_commands.Group):
    def __init__(self, services: dict[str, Any]) -> None:
        super().__init__(name="quests", description="Join the board and submit quests")
        self.services = services

    def _get_achievements(self) -> AchievementService | None:
        s = self.services.get("achievements")
        return s if isinstance(s, AchievementService) else None

    @app_commands.command(name="join", description="Create your adventurer profile")
    async def join(self, interaction: discord.Interaction) -> None:
        achievements = self._get_achievements()
        if achievements is None:
            await interaction.response.send_message("Quests are not available.", ephemeral=True)
            return

        profile = await achievements.register_discord_profile(
            discord_user_id=interaction.user.id,
            display_name=interaction.user.display_name,
            avatar_url=_avatar_url(interaction.user),
        )
        await interaction.response.send_message(
            f"🧭 Welcome, {bold_text(normalize_display_name(profile.display_name))}! You're on the Champions Board.",
            ephemeral=True,
        )

    @app_commands.command(name="submit", description="Submit a completed quest (+2 points)")
    @app_commands.describe(quest="Quest name or key")
    async def submit(self, interaction: discord.Interaction, quest: str) -> None:
        achievements = self._get_achievements()
        if achievements is None:
            await interaction.response.send_message("Quests are not available.", ephemeral=True)
            return

        try:
            await achievements.submit_quest_discord(
                discord_user_id=interaction.user.id,
                quest_key=quest,
                display_name=interaction.user.display_name,
                avatar_url=_avatar_url(interaction.user),
            )
        except ValueError:
            await interaction.response.send_message("Please give the quest a name.", ephemeral=True)
            return

        await interaction.response.send_message(f"📜 Quest {bold_text(quest)} submitted! (+2 points)", ephemeral=True)


# =====================
# ADMIN COMMANDS
# =====================
class AdminCommands(app_commands.Group):
    def __init__(self, services: dict[str, Any], admin_role: Optional[str] = None) -> None:
        super().__init__(name="admin", description="Badge administration")
        self.services = services
        self.admin_role = admin_role

    def _is_admin(self, interaction: discord.Interaction) -> bool:
        member = interaction.user
        if not isinstance(member, discord.Member):
            return False
        if self.admin_role:
            return any(r.name == self.admin_role for r in member.roles)
        return member.guild_permissions.manage_guild

    @app_commands.command(name="award_badge", description="Award a badge to a member (+10 points)")
    @app_commands.describe(member="Who earned it", badge="Badge name or key")
    async def award_badge(self, interaction: discord.Interaction, member: discord.Member, badge: str) -> None:
        if not self._is_admin(interaction):
            await interaction.response.send_message("You don't have permission to award badges.", ephemeral=True)
            return

        achievements = self.services.get("achievements")
        if not isinstance(achievements, AchievementService):
            await interaction.response.send_message("Badges are not available.", ephemeral=True)
            return

        try:
            await achievements.award_badge_discord(
                discord_user_id=member.id,
                badge_key=badge,
                display_name=member.display_name,
                avatar_url=_avatar_url(member),
            )
        except ConflictError:
            await interaction.response.send_message(f"{member.mention} already has {bold_text(badge)}.", ephemeral=True)
            return
        except (NotFound, ValueError) as e:
            await interaction.response.send_message(f"Could not award badge: {e}", ephemeral=True)
            return

        await interaction.response.send_message(f"🏅 {member.mention} earned the {bold_text(badge)} badge! (+10 points)")


# =====================
# SETUP
# =====================
async def setup(bot: discord.Client) -> None:
    services: dict[str, Any] = getattr(bot, "services", {})
    settings = getattr(bot, "settings", None)

    existing = {c.name for c in bot.tree.get_commands()}

    if "leaderboard" not in existing:
        bot.tree.add_command(LeaderboardCommands(services))
    if "quests" not in existing:
        bot.tree.add_command(QuestsCommands(services))
    if "admin" not in existing:
        admin_role = getattr(settings, "leaderboard_admin_role", None)
        bot.tree.add_command(AdminCommands(services, admin_role=admin_role))

    logger.info(
        "Discord commands registered: %s",
        " | ".join(c.name for c in bot.tree.get_commands()) or "(none)",
    )
