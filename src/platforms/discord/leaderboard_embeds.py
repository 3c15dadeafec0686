from __future__ import annotations

from typing import Optional, Sequence

import discord

from src.domain.models import AchievementFact, FactKind, LeaderboardSnapshot, RankedEntry, medal_for_rank
from src.services.scopes import scope_label

# Discord caps a field value at 1024 characters
FIELD_LIMIT = 1024
MAX_LIST_LINES = 20

EMPTY_BOARD_TEXT = "Be the first to complete quests and earn your place on the leaderboard!"
NO_ENTRY_TEXT = "No data yet. Use `/quests join` to enter the Champions Board."


def bold_text(text: str) -> str:
    """Bold user-supplied text with its own markdown and mentions neutralized."""
    return f"**{discord.utils.escape_mentions(discord.utils.escape_markdown(text))}**"


def _stats(entry: RankedEntry) -> str:
    return f"{entry.verified_submission_count} quests • {entry.badge_count} badges"


def entry_line(entry: RankedEntry, *, is_caller: bool = False) -> str:
    line = f"{medal_for_rank(entry.rank)} {bold_text(entry.display_name)} — **{entry.score}** pts · {_stats(entry)}"
    if entry.tier:
        line += f" · *{entry.tier}*"
    if is_caller:
        line += " ← **You**"
    return line


def _join_within_limit(lines: Sequence[str], *, limit: int = FIELD_LIMIT) -> str:
    out: list[str] = []
    size = 0
    for i, line in enumerate(lines):
        extra = len(line) + (1 if out else 0)
        if size + extra > limit - 16:
            out.append(f"…and {len(lines) - i} more")
            break
        out.append(line)
        size += extra
    return "\n".join(out)


def caller_card(entry: Optional[RankedEntry]) -> str:
    if entry is None:
        return NO_ENTRY_TEXT
    tier = f" · **{entry.tier}**" if entry.tier else ""
    return f"{medal_for_rank(entry.rank)} {bold_text(entry.display_name)}{tier}\n⭐ **{entry.score}** points · {_stats(entry)}"


def build_leaderboard_embed(
    snapshot: LeaderboardSnapshot,
    *,
    caller_id: Optional[str] = None,
    show_caller_card: bool = True,
    max_lines: int = MAX_LIST_LINES,
) -> discord.Embed:
    embed = discord.Embed(
        title=f"🏆 Champions Board — {scope_label(snapshot.scope)}",
        description=f"**{snapshot.population_size}** competitors · badges 10 pts, quests 2 pts",
    )

    if show_caller_card and caller_id is not None:
        embed.add_field(name="📈 Your Performance", value=caller_card(snapshot.caller_entry), inline=False)

    if not snapshot.entries:
        embed.add_field(name="Competition Awaits", value=EMPTY_BOARD_TEXT, inline=False)
        return embed

    podium = snapshot.podium
    if podium:
        lines = [f"{medal_for_rank(e.rank)} {bold_text(e.display_name)} — {e.score} pts" for e in podium]
        embed.add_field(name="Hall of Fame", value="\n".join(lines), inline=False)

    rows = [entry_line(e, is_caller=e.user_id == caller_id) for e in snapshot.entries[:max_lines]]
    if len(snapshot.entries) > max_lines:
        rows.append(f"…top {len(snapshot.entries)} in total")
    embed.add_field(name="Global Rankings", value=_join_within_limit(rows), inline=False)
    embed.set_footer(text="Use the dropdown to switch period.")
    return embed


def _fact_line(fact: AchievementFact) -> str:
    if fact.kind is FactKind.BADGE_EARNED:
        return f"🏅 Badge earned · {fact.occurred_at} UTC"
    return f"📜 Quest submitted · {fact.occurred_at} UTC"


def build_rank_embed(
    snapshot: LeaderboardSnapshot,
    *,
    recent: Sequence[AchievementFact] = (),
) -> discord.Embed:
    entry = snapshot.caller_entry
    embed = discord.Embed(title=f"🎯 Your Rank — {scope_label(snapshot.scope)}")

    if entry is None:
        embed.description = NO_ENTRY_TEXT
        return embed

    embed.description = caller_card(entry)
    embed.add_field(name="Rank", value=f"#{entry.rank} of {snapshot.population_size}", inline=True)
    embed.add_field(name="Score", value=str(entry.score), inline=True)
    if recent:
        embed.add_field(name="Recent activity", value="\n".join(_fact_line(f) for f in recent), inline=False)
    if entry.avatar_url:
        embed.set_thumbnail(url=entry.avatar_url)
    return embed
