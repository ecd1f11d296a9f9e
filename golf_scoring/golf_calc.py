from decimal import Decimal, ROUND_HALF_UP
from typing import List, NamedTuple, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG, Gender, ScoringConfig
from .schemas import TeeData

# hole counted as played (picked up) but without strokes
UNREPORTED_HOLE = -1


class ScoreMetrics(NamedTuple):
    holes_played: int
    gross_score: int
    relative_to_par: int
    has_unreported_hole: bool


class Rating(NamedTuple):
    course_rating: float
    slope_rating: int
    source: str  # "gender", "single", "default_gender", "first", "tee", "fallback"


# --------------------------------------------------------------------------------
# -------------------------------- Score metrics ---------------------------------
# --------------------------------------------------------------------------------

def holes_played(score: Sequence[int]) -> int:
    return sum(1 for s in score if s != 0)


def gross_score(score: Sequence[int]) -> int:
    return sum(s for s in score if s > 0)


def relative_to_par(score: Sequence[int], pars: Sequence[int]) -> int:
    # zip() stops at the shorter sequence
    return sum(s - p for s, p in zip(score, pars) if s > 0)


def has_unreported_hole(score: Sequence[int]) -> bool:
    return UNREPORTED_HOLE in score


def score_metrics(score: Sequence[int], pars: Sequence[int]) -> ScoreMetrics:
    return ScoreMetrics(
        holes_played=holes_played(score),
        gross_score=gross_score(score),
        relative_to_par=relative_to_par(score, pars),
        has_unreported_hole=has_unreported_hole(score),
    )


def par_totals(pars: Sequence[int]) -> Tuple[int, int, int]:
    """(front nine, back nine, total)"""
    half = len(pars) // 2
    front = sum(pars[:half])
    back = sum(pars[half:])
    return front, back, front + back


# --------------------------------------------------------------------------------
# ---------------------------------- Handicap ------------------------------------
# --------------------------------------------------------------------------------

def round_half_away(value: float) -> int:
    """Round to the nearest integer, .5 away from zero (10.5 -> 11, -2.5 -> -3)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def select_rating(
    tee: Optional[TeeData],
    gender: Optional[Gender],
    total_par: int,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> Rating:
    """
    Rating used for a player on a tee:
    1) the tee's rating for the player's gender
    2) the tee's only rating
    3) with two ratings and no match: the configured default gender, else the first
    4) the rating stored on the tee itself
    5) configured fallback (course rating None -> course par)
    """
    if tee is not None:
        ratings = tee.ratings
        if gender is not None:
            for r in ratings:
                if r.gender == gender:
                    return Rating(r.course_rating, r.slope_rating, "gender")
        if len(ratings) == 1:
            r = ratings[0]
            return Rating(r.course_rating, r.slope_rating, "single")
        if ratings:
            for r in ratings:
                if r.gender == config.default_gender:
                    return Rating(r.course_rating, r.slope_rating, "default_gender")
            r = ratings[0]
            return Rating(r.course_rating, r.slope_rating, "first")
        if tee.course_rating is not None:
            slope = tee.slope_rating or config.default_slope_rating
            return Rating(tee.course_rating, slope, "tee")

    course_rating = config.default_course_rating
    if course_rating is None:
        course_rating = float(total_par)
    return Rating(course_rating, config.default_slope_rating, "fallback")


def course_handicap(
    handicap_index: Optional[float],
    rating: Rating,
    par: int,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> Optional[int]:
    # WHS: HI * slope / 113 + (CR - par)
    if handicap_index is None:
        return None
    raw = handicap_index * rating.slope_rating / config.standard_slope_rating
    raw += rating.course_rating - par
    return round_half_away(raw)


def net_score(gross: int, ch: int) -> int:
    # round-level adjustment, never summed hole by hole
    return gross - ch


def format_course_handicap(ch: int) -> str:
    if ch < 0:
        return f"+{abs(ch)}"
    return str(ch)


def format_handicap_index(hcp: float) -> str:
    if hcp < 0:
        return f"+{abs(hcp):.1f}"
    return f"{hcp:.1f}"


# --------------------------------------------------------------------------------
# ------------------------------ Stroke allocation -------------------------------
# --------------------------------------------------------------------------------

def is_valid_stroke_index(stroke_index: Optional[Sequence[int]], holes: int = 18) -> bool:
    if not stroke_index or len(stroke_index) != holes:
        return False
    return sorted(stroke_index) == list(range(1, holes + 1))


def resolve_stroke_index(
    candidate: Optional[Sequence[int]],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> Tuple[List[int], bool]:
    """Returns (stroke index, used_default)."""
    if is_valid_stroke_index(candidate, config.holes_per_round):
        return list(candidate), False
    return list(config.default_stroke_index), True


def strokes_received_per_hole(ch: int, stroke_index: Sequence[int]) -> List[int]:
    """
    Handicap strokes per hole, in hole order. Plus handicaps give strokes back
    (negative values). Display only: the net total is gross - ch.
    """
    holes = len(stroke_index)
    if holes == 0:
        return []
    sign = -1 if ch < 0 else 1
    base, extra = divmod(abs(ch), holes)

    return [sign * (base + (1 if si <= extra else 0)) for si in stroke_index]


def partial_net_relative_to_par(
    score: Sequence[int],
    pars: Sequence[int],
    strokes: Sequence[int],
) -> int:
    """Net relative to par over the holes played so far, for a live net ranking."""
    return sum(s - p - k for s, p, k in zip(score, pars, strokes) if s > 0)
