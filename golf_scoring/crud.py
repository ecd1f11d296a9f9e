from datetime import datetime

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from . import models


#---------------------------------------------------------------------------------
# --------------------------------- Competitions ---------------------------------
# --------------------------------------------------------------------------------

def get_competition(db: Session, competition_id: int):
    return db.query(models.Competition).filter(models.Competition.id == competition_id).first()


def get_due_competitions(db: Session, now: datetime):
    """
    Competitions whose scoring window is over:
    - scheduled: the competition day is before today
    - open: open_end has passed (the date alone is not enough)
    """
    return (
        db.query(models.Competition)
        .filter(
            or_(
                and_(
                    models.Competition.start_mode == "scheduled",
                    models.Competition.date < now.date(),
                ),
                and_(
                    models.Competition.start_mode == "open",
                    models.Competition.open_end.isnot(None),
                    models.Competition.open_end < now,
                ),
            )
        )
        .order_by(models.Competition.date.asc(), models.Competition.id.asc())
        .all()
    )


#---------------------------------------------------------------------------------
# --------------------------------- Participants ---------------------------------
# --------------------------------------------------------------------------------

def get_participant(db: Session, participant_id: int):
    return db.query(models.Participant).filter(models.Participant.id == participant_id).first()


def get_participants_for_competition(db: Session, competition_id: int):
    return (
        db.query(models.Participant)
        .join(models.TeeTime, models.Participant.tee_time_id == models.TeeTime.id)
        .filter(models.TeeTime.competition_id == competition_id)
        .order_by(models.TeeTime.teetime, models.Participant.tee_order, models.Participant.id)
        .all()
    )


#---------------------------------------------------------------------------------
# ----------------------------------- Results ------------------------------------
# --------------------------------------------------------------------------------

def get_competition_results(db: Session, competition_id: int, scoring_type: str = "gross"):
    # ranked rows first, DQ/DNF (position 0) at the bottom
    return (
        db.query(models.CompetitionResult)
        .filter(
            models.CompetitionResult.competition_id == competition_id,
            models.CompetitionResult.scoring_type == scoring_type,
        )
        .order_by(
            (models.CompetitionResult.position == 0),
            models.CompetitionResult.position,
            models.CompetitionResult.id,
        )
        .all()
    )


def delete_competition_results(db: Session, competition_id: int):
    db.query(models.CompetitionResult).filter(
        models.CompetitionResult.competition_id == competition_id
    ).delete()


def get_tour(db: Session, tour_id: int):
    return db.query(models.Tour).filter(models.Tour.id == tour_id).first()


def get_tour_points(db: Session, tour_id: int, scoring_type: str = "gross"):
    """Stored points per player over the tour's finalized competitions."""
    return (
        db.query(
            models.CompetitionResult.player_id,
            models.Player.name,
            func.coalesce(func.sum(models.CompetitionResult.points), 0).label("total_points"),
            func.count(func.distinct(models.CompetitionResult.competition_id)).label("competitions_played"),
        )
        .join(models.Competition, models.CompetitionResult.competition_id == models.Competition.id)
        .join(models.Player, models.CompetitionResult.player_id == models.Player.id)
        .filter(
            models.Competition.tour_id == tour_id,
            models.Competition.is_results_final.is_(True),
            models.CompetitionResult.scoring_type == scoring_type,
            models.CompetitionResult.position > 0,
        )
        .group_by(models.CompetitionResult.player_id, models.Player.name)
        .order_by(
            func.coalesce(func.sum(models.CompetitionResult.points), 0).desc(),
            func.count(func.distinct(models.CompetitionResult.competition_id)).desc(),
            models.Player.name,
        )
        .all()
    )
