"""
Leaderboard orchestration for one competition.

The pure part (``build_entry``, ``compute_leaderboard``,
``compute_team_leaderboard``) works on the Pydantic contracts from
``schemas``; the ``get_*`` functions load those contracts from the database
and hand them over. Finalized competitions are served from the stored
results snapshot instead of being recomputed.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import structlog
from sqlalchemy.orm import Session

from . import crud, models
from .config import DEFAULT_CONFIG, Gender, ScoringConfig
from .db import utcnow
from .exceptions import (
    CompetitionNotFoundError,
    InvalidScoreError,
    ParticipantNotFoundError,
    ResultsFinalError,
    ScorecardLockedError,
)
from .golf_calc import (
    UNREPORTED_HOLE,
    course_handicap,
    net_score,
    partial_net_relative_to_par,
    resolve_stroke_index,
    score_metrics,
    select_rating,
    strokes_received_per_hole,
)
from .points import default_points, project_points
from .ranking import competition_positions, is_dnf, rank_leaderboard, ranked_scoring_type
from .schemas import (
    CompetitionData,
    CourseData,
    LeaderboardEntry,
    LeaderboardResponse,
    ParticipantData,
    ScoringMode,
    ScoringType,
    TeamLeaderboardEntry,
    TeamStatus,
    TeeData,
    TeeInfo,
    TeeRating,
)

logger = structlog.get_logger(__name__)

TEAM_STATUS_ORDER = {
    TeamStatus.FINISHED: 0,
    TeamStatus.IN_PROGRESS: 1,
    TeamStatus.NOT_STARTED: 2,
}


@dataclass(frozen=True)
class LeaderboardContext:
    competition: CompetitionData
    course: CourseData
    stroke_index: List[int]
    config: ScoringConfig = DEFAULT_CONFIG

    @property
    def needs_net(self) -> bool:
        return self.competition.scoring_mode != ScoringMode.GROSS


# ================================================================================
# ================================ Pure computation ==============================
# ================================================================================

def build_entry(
    participant: ParticipantData,
    ctx: LeaderboardContext,
    with_net: Optional[bool] = None,
) -> LeaderboardEntry:
    config = ctx.config
    total_par = ctx.course.total_par
    if with_net is None:
        with_net = ctx.needs_net

    ch = None
    strokes = None
    if with_net and participant.handicap_index is not None:
        tee = participant.tee or ctx.competition.tee
        rating = select_rating(tee, participant.gender, total_par, config)
        ch = course_handicap(participant.handicap_index, rating, total_par, config)
        strokes = strokes_received_per_hole(ch, ctx.stroke_index)

    if participant.manual_total is not None:
        # manual totals short-circuit the hole-by-hole metrics
        gross = participant.manual_total
        holes = config.holes_per_round
        rel = gross - total_par
        unreported = False
    else:
        metrics = score_metrics(participant.score, ctx.course.pars)
        gross = metrics.gross_score
        holes = metrics.holes_played
        rel = metrics.relative_to_par
        unreported = metrics.has_unreported_hole

    # net total only for a complete round, never with a picked-up hole
    net_total = None
    net_rel = None
    if ch is not None and not unreported:
        if holes >= config.holes_per_round:
            net_total = net_score(gross, ch)
            net_rel = net_total - total_par
        else:
            net_rel = partial_net_relative_to_par(participant.score, ctx.course.pars, strokes)

    return LeaderboardEntry(
        participant_id=participant.id,
        player_id=participant.player_id,
        player_name=participant.name,
        team_id=participant.team_id,
        team_name=participant.team_name,
        tee_time_id=participant.tee_time_id,
        start_time=participant.start_time,
        score=list(participant.score),
        gross_total=gross,
        holes_played=holes,
        relative_to_par=rel,
        has_unreported_hole=unreported,
        handicap_index=participant.handicap_index,
        course_handicap=ch,
        strokes_per_hole=strokes,
        net_total=net_total,
        net_relative_to_par=net_rel,
        is_dq=participant.is_dq,
        is_dnf=is_dnf(holes, config.holes_per_round, ctx.competition.window_closed),
        is_locked=participant.is_locked,
    )


def compute_leaderboard(
    ctx: LeaderboardContext,
    participants: Sequence[ParticipantData],
    ranked_by: Optional[ScoringType] = None,
) -> List[LeaderboardEntry]:
    competition = ctx.competition
    if ranked_by is None:
        ranked_by = ranked_scoring_type(competition.scoring_mode)

    # a net ranking needs handicaps even when the competition is played gross
    with_net = ctx.needs_net or ranked_by == ScoringType.NET
    entries = [build_entry(p, ctx, with_net) for p in participants]
    ranked = rank_leaderboard(entries, ranked_by, ctx.config.net_fallback)

    if not competition.is_tour_competition:
        return ranked
    return project_points(
        ranked,
        competition.points_table,
        competition.points_multiplier,
        is_final=competition.is_results_final,
    )


def _team_status(members: Sequence[LeaderboardEntry], holes_per_round: int) -> TeamStatus:
    if not any(m.holes_played > 0 for m in members):
        return TeamStatus.NOT_STARTED
    if all(m.holes_played >= holes_per_round for m in members):
        return TeamStatus.FINISHED
    return TeamStatus.IN_PROGRESS


def compute_team_leaderboard(
    entries: Sequence[LeaderboardEntry],
    holes_per_round: int = 18,
    points_multiplier: float = 1.0,
) -> List[TeamLeaderboardEntry]:
    """
    Sums each team's relative to par and gross shots. Members who have not
    started or picked up a hole do not count towards the totals.
    Teams are ordered FINISHED, IN_PROGRESS, NOT_STARTED, then by total,
    then by their best individual scores.
    """
    groups: Dict[int, List[LeaderboardEntry]] = {}
    for e in entries:
        if e.team_id is None:
            continue
        groups.setdefault(e.team_id, []).append(e)

    rows = []
    for team_id, members in groups.items():
        status = _team_status(members, holes_per_round)
        counted = [m for m in members if m.holes_played > 0 and not m.has_unreported_hole]
        start_times = [m.start_time for m in members if m.start_time]
        start_time = min(start_times) if start_times else None

        if status == TeamStatus.NOT_STARTED:
            progress = f"Starts {start_time}" if start_time else "Starts TBD"
            total_rel = None
            total_shots = None
        else:
            max_holes = max(m.holes_played for m in members)
            progress = "F" if status == TeamStatus.FINISHED else f"Thru {max_holes}"
            total_rel = sum(m.relative_to_par for m in counted)
            total_shots = sum(m.gross_total for m in counted)

        best_scores = sorted(m.relative_to_par for m in counted)
        rows.append((status, best_scores, TeamLeaderboardEntry(
            team_id=team_id,
            team_name=members[0].team_name,
            status=status,
            start_time=start_time,
            display_progress=progress,
            total_relative_score=total_rel,
            total_shots=total_shots,
        )))

    def sort_key(row):
        status, best_scores, team = row
        if status == TeamStatus.NOT_STARTED:
            return (TEAM_STATUS_ORDER[status], 0, [])
        # a team that runs out of individual scores first loses the tie-break
        individual = [(0, s) for s in best_scores] + [(1, 0)]
        return (TEAM_STATUS_ORDER[status], team.total_relative_score, individual)

    rows.sort(key=sort_key)
    teams = [team for _, _, team in rows]

    started = [t for t in teams if t.status != TeamStatus.NOT_STARTED]
    positions = competition_positions([t.total_relative_score for t in started])
    number_of_teams = len(teams)
    for team, position in zip(started, positions):
        team.position = position
        team.team_points = default_points(position, number_of_teams, points_multiplier)

    return teams


# ================================================================================
# ============================= Loading from database ============================
# ================================================================================

def _parse_gender(value) -> Optional[Gender]:
    if not value:
        return None
    try:
        return Gender(value)
    except ValueError:
        return None


def _tee_data(tee: Optional[models.CourseTee]) -> Optional[TeeData]:
    if tee is None:
        return None
    ratings = []
    for r in tee.ratings:
        gender = _parse_gender(r.gender)
        if gender is not None:
            ratings.append(TeeRating(
                gender=gender,
                course_rating=r.course_rating,
                slope_rating=r.slope_rating,
            ))
    return TeeData(
        id=tee.id,
        name=tee.name,
        course_rating=tee.course_rating,
        slope_rating=tee.slope_rating,
        ratings=ratings,
    )


def _course_data(course: models.Course) -> CourseData:
    holes = list(course.holes)
    stroke_index = [h.stroke_index for h in holes]
    return CourseData(
        pars=[h.par for h in holes],
        stroke_index=stroke_index if all(si is not None for si in stroke_index) else None,
    )


def _participant_data(p: models.Participant) -> ParticipantData:
    player = p.player
    handicap_index = p.handicap_index
    if handicap_index is None and player is not None:
        handicap_index = player.hcp_exact
    gender = _parse_gender(p.gender) or _parse_gender(player.gender if player else None)

    return ParticipantData(
        id=p.id,
        player_id=p.player_id,
        name=player.name if player else (p.player_names or ""),
        score=list(p.score or []),
        handicap_index=handicap_index,
        gender=gender,
        tee=_tee_data(p.tee),
        is_dq=bool(p.is_dq),
        is_locked=bool(p.is_locked),
        manual_total=p.manual_score_total,
        team_id=p.team_id,
        team_name=p.team.name if p.team else "",
        tee_time_id=p.tee_time_id,
        start_time=p.tee_time.teetime if p.tee_time else None,
    )


def scoring_mode_for(competition: models.Competition) -> ScoringMode:
    raw = competition.scoring_mode
    if raw is None and competition.tour is not None:
        raw = competition.tour.scoring_mode
    if raw is None:
        return ScoringMode.GROSS
    try:
        return ScoringMode(raw)
    except ValueError:
        logger.warning("unknown_scoring_mode", competition_id=competition.id, scoring_mode=raw)
        return ScoringMode.GROSS


def _points_multiplier(competition: models.Competition, config: ScoringConfig) -> float:
    # 0 is a valid multiplier (a competition that awards no points)
    if competition.points_multiplier is None:
        return config.default_points_multiplier
    return competition.points_multiplier


def is_window_closed(competition: models.Competition, now: datetime) -> bool:
    """Open competitions close at open_end, scheduled ones at the end of their day."""
    if competition.start_mode == "open":
        return competition.open_end is not None and competition.open_end < now
    return competition.date < now.date()


def _competition_data(
    competition: models.Competition,
    now: datetime,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> CompetitionData:
    tour = competition.tour
    points_table = None
    if tour is not None and tour.point_template is not None:
        points_table = dict(tour.point_template.points_structure or {})

    return CompetitionData(
        id=competition.id,
        tour_id=competition.tour_id,
        points_multiplier=_points_multiplier(competition, config),
        scoring_mode=scoring_mode_for(competition),
        window_closed=is_window_closed(competition, now),
        is_results_final=bool(competition.is_results_final),
        tee=_tee_data(competition.tee),
        points_table=points_table,
    )


def load_context(
    db: Session,
    competition_id: int,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
):
    """Returns (competition row, context, participants)."""
    competition = crud.get_competition(db, competition_id)
    if competition is None:
        raise CompetitionNotFoundError(competition_id)

    now = now or utcnow()
    data = _competition_data(competition, now, config)
    course = _course_data(competition.course)

    stroke_index, used_default = resolve_stroke_index(course.stroke_index, config)
    if used_default and data.scoring_mode != ScoringMode.GROSS:
        logger.warning(
            "stroke_index_fallback",
            competition_id=competition_id,
            course_id=competition.course_id,
        )

    ctx = LeaderboardContext(
        competition=data,
        course=course,
        stroke_index=stroke_index,
        config=config,
    )
    participants = [
        _participant_data(p)
        for p in crud.get_participants_for_competition(db, competition_id)
    ]
    return competition, ctx, participants


def _entry_from_result(row: models.CompetitionResult, is_tour: bool) -> LeaderboardEntry:
    p = row.participant
    data = _participant_data(p)
    return LeaderboardEntry(
        participant_id=row.participant_id,
        player_id=row.player_id,
        player_name=data.name,
        team_id=data.team_id,
        team_name=data.team_name,
        tee_time_id=data.tee_time_id,
        start_time=data.start_time,
        score=data.score,
        gross_total=row.gross_score or 0,
        holes_played=row.holes_played,
        relative_to_par=row.relative_to_par or 0,
        has_unreported_hole=UNREPORTED_HOLE in data.score,
        handicap_index=data.handicap_index,
        course_handicap=row.course_handicap,
        net_total=row.net_score,
        net_relative_to_par=row.net_relative_to_par,
        position=row.position,
        points=row.points,
        is_projected=False if is_tour else None,
        is_dq=row.is_dq,
        is_dnf=row.is_dnf,
        is_locked=data.is_locked,
    )


def _tee_info(ctx: LeaderboardContext) -> Optional[TeeInfo]:
    if not ctx.needs_net and ctx.competition.tee is None:
        return None
    tee = ctx.competition.tee
    rating = select_rating(tee, None, ctx.course.total_par, ctx.config)
    return TeeInfo(
        id=tee.id if tee else None,
        name=tee.name if tee else "Default",
        course_rating=rating.course_rating,
        slope_rating=rating.slope_rating,
        stroke_index=ctx.stroke_index,
    )


def get_leaderboard_with_details(
    db: Session,
    competition_id: int,
    scoring_type: Optional[ScoringType] = None,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> LeaderboardResponse:
    competition, ctx, participants = load_context(db, competition_id, config, now)
    data = ctx.competition
    ranked_by = scoring_type or ranked_scoring_type(data.scoring_mode)

    entries = None
    if data.is_results_final:
        rows = crud.get_competition_results(db, competition_id, ranked_by.value)
        if rows:
            entries = [_entry_from_result(r, data.is_tour_competition) for r in rows]
    if entries is None:
        entries = compute_leaderboard(ctx, participants, ranked_by)

    logger.debug(
        "leaderboard_computed",
        competition_id=competition_id,
        ranked_by=ranked_by.value,
        entries=len(entries),
        from_snapshot=data.is_results_final,
    )

    return LeaderboardResponse(
        competition_id=competition_id,
        scoring_mode=data.scoring_mode,
        ranked_by=ranked_by,
        is_tour_competition=data.is_tour_competition,
        is_results_final=data.is_results_final,
        tee=_tee_info(ctx),
        entries=entries,
    )


def get_leaderboard(
    db: Session,
    competition_id: int,
    scoring_type: Optional[ScoringType] = None,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> List[LeaderboardEntry]:
    return get_leaderboard_with_details(db, competition_id, scoring_type, config, now).entries


def get_team_leaderboard(
    db: Session,
    competition_id: int,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> List[TeamLeaderboardEntry]:
    response = get_leaderboard_with_details(db, competition_id, None, config, now)
    competition = crud.get_competition(db, competition_id)
    return compute_team_leaderboard(
        response.entries,
        holes_per_round=config.holes_per_round,
        points_multiplier=_points_multiplier(competition, config),
    )


# ================================================================================
# ================================= Score entry ==================================
# ================================================================================

def _get_participant_or_raise(db: Session, participant_id: int) -> models.Participant:
    participant = crud.get_participant(db, participant_id)
    if participant is None:
        raise ParticipantNotFoundError(participant_id)
    return participant


def update_hole_score(
    db: Session,
    participant_id: int,
    hole: int,
    shots: int,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> models.Participant:
    """
    Writes one hole. shots: >0 strokes, 0 clears the hole, -1 picked up.
    """
    participant = _get_participant_or_raise(db, participant_id)
    if participant.is_locked:
        raise ScorecardLockedError(participant_id)

    competition = participant.tee_time.competition
    if competition.is_results_final:
        raise ResultsFinalError(competition.id)

    holes = len(competition.course.holes) or config.holes_per_round
    if hole < 1 or hole > holes:
        raise InvalidScoreError(f"Hole number must be between 1 and {holes}")
    if shots < UNREPORTED_HOLE:
        raise InvalidScoreError("Shots must be greater than 0, or -1 (gave up), or 0 (clear score)")

    score = list(participant.score or [])
    score.extend([0] * (holes - len(score)))
    score[hole - 1] = shots

    # new list so the JSON column is flagged dirty
    participant.score = score
    db.commit()
    db.refresh(participant)

    logger.info(
        "hole_score_updated",
        participant_id=participant_id,
        competition_id=competition.id,
        hole=hole,
        shots=shots,
    )
    return participant


def lock_scorecard(db: Session, participant_id: int) -> models.Participant:
    participant = _get_participant_or_raise(db, participant_id)
    participant.is_locked = True
    participant.locked_at = utcnow()
    db.commit()
    db.refresh(participant)
    return participant


def unlock_scorecard(db: Session, participant_id: int) -> models.Participant:
    participant = _get_participant_or_raise(db, participant_id)
    participant.is_locked = False
    participant.locked_at = None
    db.commit()
    db.refresh(participant)
    return participant
