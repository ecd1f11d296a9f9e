"""
Results snapshot for competitions whose scoring window is over.

finalize_competition_results() writes one competition_results row per
participant per scoring type inside a single transaction, then flags the
competition final. A competition that is already final is skipped, and the
UNIQUE(participant_id, scoring_type) constraint turns a concurrent retry
into a no-op.
"""
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import crud, models
from .config import DEFAULT_CONFIG, ScoringConfig
from .db import utcnow
from .exceptions import CompetitionNotFoundError, FinalizationError, TourNotFoundError
from .leaderboard import compute_leaderboard, load_context
from .ranking import competition_positions
from .schemas import FinalizeSummary, ScoringMode, ScoringType, StoredResult, TourStanding

logger = structlog.get_logger(__name__)


def required_scoring_types(mode: ScoringMode) -> List[ScoringType]:
    if mode == ScoringMode.GROSS:
        return [ScoringType.GROSS]
    return [ScoringType.GROSS, ScoringType.NET]


def is_competition_finalized(db: Session, competition_id: int) -> bool:
    competition = crud.get_competition(db, competition_id)
    if competition is None:
        raise CompetitionNotFoundError(competition_id)
    return bool(competition.is_results_final)


def _write_snapshot(db: Session, competition_id: int, config: ScoringConfig, now: datetime):
    competition, ctx, participants = load_context(db, competition_id, config, now)

    # rank live, never from a previous snapshot
    ctx = replace(ctx, competition=ctx.competition.model_copy(update={"is_results_final": False}))

    written = 0
    for scoring_type in required_scoring_types(ctx.competition.scoring_mode):
        entries = compute_leaderboard(ctx, participants, scoring_type)
        for e in entries:
            db.add(models.CompetitionResult(
                competition_id=competition_id,
                participant_id=e.participant_id,
                player_id=e.player_id,
                scoring_type=scoring_type.value,
                position=e.position,
                points=e.points,
                gross_score=e.gross_total,
                net_score=e.net_total,
                relative_to_par=e.relative_to_par,
                net_relative_to_par=e.net_relative_to_par,
                holes_played=e.holes_played,
                course_handicap=e.course_handicap,
                is_dq=e.is_dq,
                is_dnf=e.is_dnf,
                calculated_at=now,
            ))
            written += 1

    competition.is_results_final = True
    competition.results_finalized_at = now
    return written


def finalize_competition_results(
    db: Session,
    competition_id: int,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
    force: bool = False,
) -> bool:
    """
    Snapshot the competition's results. Returns False when there was nothing
    to do (already final). Raises FinalizationError after rolling back.

    force=True rewrites the snapshot of an already final competition.
    """
    now = now or utcnow()
    competition = crud.get_competition(db, competition_id)
    if competition is None:
        raise CompetitionNotFoundError(competition_id)

    if competition.is_results_final and not force:
        logger.info("results_already_final", competition_id=competition_id)
        return False

    try:
        if force:
            crud.delete_competition_results(db, competition_id)
            db.flush()
        written = _write_snapshot(db, competition_id, config, now)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        # a concurrent finalize got there first
        if is_competition_finalized(db, competition_id):
            logger.info("results_finalized_concurrently", competition_id=competition_id)
            return False
        raise FinalizationError(competition_id, "Duplicate result rows") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise FinalizationError(competition_id) from exc
    except Exception:
        db.rollback()
        raise

    logger.info(
        "results_finalized",
        competition_id=competition_id,
        rows=written,
        forced=force,
    )
    return True


def recalculate_results(
    db: Session,
    competition_id: int,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> bool:
    """Rewrite the snapshot, e.g. after an admin edited a score."""
    return finalize_competition_results(db, competition_id, config, now, force=True)


def finalize_due_competitions(
    db: Session,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> FinalizeSummary:
    """
    Finalize every competition whose window is over. One failing competition
    is logged and the batch continues.
    """
    now = now or utcnow()
    summary = FinalizeSummary()

    competitions = crud.get_due_competitions(db, now)
    logger.info("finalize_batch_started", competitions=len(competitions))

    for competition in competitions:
        competition_id = competition.id
        if competition.is_results_final:
            summary.skipped += 1
            continue
        try:
            if finalize_competition_results(db, competition_id, config, now):
                summary.processed += 1
            else:
                summary.skipped += 1
        except Exception:
            logger.exception("finalize_failed", competition_id=competition_id)
            summary.errors += 1
            summary.failed_competition_ids.append(competition_id)

    logger.info(
        "finalize_batch_finished",
        processed=summary.processed,
        skipped=summary.skipped,
        errors=summary.errors,
    )
    return summary


#---------------------------------------------------------------------------------
# ------------------------------- Stored results ---------------------------------
# --------------------------------------------------------------------------------

def get_competition_results(
    db: Session,
    competition_id: int,
    scoring_type: ScoringType = ScoringType.GROSS,
) -> List[StoredResult]:
    if crud.get_competition(db, competition_id) is None:
        raise CompetitionNotFoundError(competition_id)
    return [
        StoredResult(
            competition_id=r.competition_id,
            participant_id=r.participant_id,
            player_id=r.player_id,
            scoring_type=ScoringType(r.scoring_type),
            position=r.position,
            points=r.points,
            gross_score=r.gross_score,
            net_score=r.net_score,
            relative_to_par=r.relative_to_par,
            calculated_at=r.calculated_at,
        )
        for r in crud.get_competition_results(db, competition_id, scoring_type.value)
    ]


def get_tour_standings(
    db: Session,
    tour_id: int,
    scoring_type: ScoringType = ScoringType.GROSS,
) -> List[TourStanding]:
    """Tour standings from stored points of finalized competitions."""
    if crud.get_tour(db, tour_id) is None:
        raise TourNotFoundError(tour_id)

    rows = crud.get_tour_points(db, tour_id, scoring_type.value)
    # rows come sorted by points desc, so negate for the ascending ranking helper
    positions = competition_positions([-int(r.total_points) for r in rows])
    return [
        TourStanding(
            player_id=r.player_id,
            player_name=r.name,
            total_points=int(r.total_points),
            competitions_played=r.competitions_played,
            position=position,
        )
        for r, position in zip(rows, positions)
    ]
