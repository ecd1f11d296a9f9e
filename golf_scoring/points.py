from __future__ import annotations

from typing import Sequence

from .golf_calc import round_half_away
from .schemas import LeaderboardEntry, PointsTable


def default_points(position: int, number_of_players: int, multiplier: float = 1.0) -> int:
    """Formula used when a tour has no point template.

    1st: N + 2, 2nd: N, then N - (position - 1), never below 0.
    """

    if position <= 0:
        return 0
    if position == 1:
        base = number_of_players + 2
    elif position == 2:
        base = number_of_players
    else:
        base = max(0, number_of_players - (position - 1))
    return round_half_away(base * multiplier)


def points_for_position(
    position: int,
    table: PointsTable | None,
    multiplier: float = 1.0,
    number_of_players: int = 0,
) -> int | None:
    """Points for a ranked position, None for excluded entries (position 0)."""

    if position <= 0:
        return None
    if table is None:
        return default_points(position, number_of_players, multiplier)

    base = table.get(str(position))
    if base is None:
        base = table.get("default", 0)
    return round_half_away(base * multiplier)


def project_points(
    ranked: Sequence[LeaderboardEntry],
    table: PointsTable | None,
    multiplier: float = 1.0,
    is_final: bool = False,
) -> list[LeaderboardEntry]:
    number_of_players = sum(1 for e in ranked if e.position > 0)
    return [
        e.model_copy(
            update={
                "points": points_for_position(e.position, table, multiplier, number_of_players),
                "is_projected": not is_final,
            }
        )
        for e in ranked
    ]
