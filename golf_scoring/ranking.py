from __future__ import annotations

from typing import Hashable, Sequence

from .config import NetFallback
from .schemas import LeaderboardEntry, ScoringMode, ScoringType


def competition_positions(sorted_keys: Sequence[Hashable]) -> list[int]:
    """Competition ranking over keys already sorted best first.

    Equal keys share the position of the first of them, the next distinct key
    gets its 1-based index (e.g. 1,1,3,4,4,6).
    """

    positions: list[int] = []
    last_key: Hashable | None = None
    current = 0

    for index, key in enumerate(sorted_keys, start=1):
        if index == 1 or key != last_key:
            current = index
            last_key = key
        positions.append(current)

    return positions


def ranked_scoring_type(mode: ScoringMode) -> ScoringType:
    """Which figure orders the leaderboard for a scoring mode."""

    if mode == ScoringMode.GROSS:
        return ScoringType.GROSS
    if mode == ScoringMode.NET:
        return ScoringType.NET
    if mode == ScoringMode.BOTH:
        # both figures are exposed, gross decides the order
        return ScoringType.GROSS
    raise ValueError(f"unknown scoring mode: {mode!r}")


def is_dnf(holes_played: int, holes_per_round: int, window_closed: bool) -> bool:
    return window_closed and holes_played < holes_per_round


def uses_gross_fallback(entry: LeaderboardEntry, ranked_by: ScoringType) -> bool:
    return ranked_by == ScoringType.NET and entry.net_relative_to_par is None


def ranking_key(
    entry: LeaderboardEntry,
    ranked_by: ScoringType,
    net_fallback: NetFallback = NetFallback.GROSS,
) -> tuple[int, int]:
    """(group, relative to par). Lower sorts first."""

    if not uses_gross_fallback(entry, ranked_by):
        if ranked_by == ScoringType.NET:
            return (0, entry.net_relative_to_par)
        return (0, entry.relative_to_par)

    if net_fallback == NetFallback.LAST:
        return (1, entry.relative_to_par)
    return (0, entry.relative_to_par)


def rank_leaderboard(
    entries: Sequence[LeaderboardEntry],
    ranked_by: ScoringType,
    net_fallback: NetFallback = NetFallback.GROSS,
) -> list[LeaderboardEntry]:
    """Ranked finishers first, then DNF, then DQ (both with position 0)."""

    finishers = [e for e in entries if not e.is_dq and not e.is_dnf]
    dnf = [e for e in entries if e.is_dnf and not e.is_dq]
    dq = [e for e in entries if e.is_dq]

    keyed = sorted(
        ((ranking_key(e, ranked_by, net_fallback), e) for e in finishers),
        key=lambda pair: pair[0],
    )
    positions = competition_positions([key for key, _ in keyed])

    ranked = [
        entry.model_copy(
            update={
                "position": position,
                "ranked_by_gross": uses_gross_fallback(entry, ranked_by),
            }
        )
        for (_, entry), position in zip(keyed, positions)
    ]

    excluded = sorted(dnf, key=lambda e: -e.holes_played) + sorted(
        dq, key=lambda e: e.player_name or e.team_name
    )
    ranked.extend(
        e.model_copy(update={"position": 0, "ranked_by_gross": False}) for e in excluded
    )
    return ranked
