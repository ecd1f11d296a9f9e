from __future__ import annotations

from datetime import date, datetime

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from golf_scoring import models
from golf_scoring.db import init_db, make_engine

PARS = [4, 4, 3, 5, 4, 4, 3, 4, 5, 4, 4, 3, 5, 4, 4, 3, 4, 5]  # par 72
STROKE_INDEX = [5, 13, 1, 9, 17, 3, 11, 15, 7, 6, 14, 2, 10, 18, 4, 12, 16, 8]

ROUND_DAY = date(2026, 6, 1)
DURING_ROUND = datetime(2026, 6, 1, 12, 0)
DAY_AFTER = datetime(2026, 6, 2, 9, 0)


def round_score(relative: int = 0, holes: int = 18) -> list[int]:
    """Par on every hole, `relative` strokes added on hole 1, unplayed after `holes`."""

    score = list(PARS[:holes]) + [0] * (18 - holes)
    if holes:
        score[0] += relative
    return score


class Factory:
    def __init__(self, db):
        self.db = db

    def course(self, pars=PARS, stroke_index=STROKE_INDEX) -> models.Course:
        course = models.Course(name="Links")
        for number, par in enumerate(pars, start=1):
            si = stroke_index[number - 1] if stroke_index else None
            course.holes.append(models.Hole(number=number, par=par, stroke_index=si))
        self.db.add(course)
        self.db.commit()
        return course

    def tee(self, course, name="Yellow", course_rating=None, slope_rating=None, ratings=()):
        tee = models.CourseTee(
            course_id=course.id,
            name=name,
            course_rating=course_rating,
            slope_rating=slope_rating,
        )
        for gender, cr, slope in ratings:
            tee.ratings.append(
                models.CourseTeeRating(gender=gender, course_rating=cr, slope_rating=slope)
            )
        self.db.add(tee)
        self.db.commit()
        return tee

    def tour(self, scoring_mode="gross", points_structure=None) -> models.Tour:
        template = None
        if points_structure is not None:
            template = models.PointTemplate(name="Tour points", points_structure=points_structure)
        tour = models.Tour(name="Summer Tour", scoring_mode=scoring_mode, point_template=template)
        self.db.add(tour)
        self.db.commit()
        return tour

    def competition(
        self,
        course=None,
        tour=None,
        tee=None,
        day=ROUND_DAY,
        start_mode="scheduled",
        open_end=None,
        scoring_mode=None,
        points_multiplier=1.0,
    ) -> models.Competition:
        course = course or self.course()
        competition = models.Competition(
            name="Monthly Medal",
            date=day,
            course_id=course.id,
            tour_id=tour.id if tour else None,
            tee_id=tee.id if tee else None,
            start_mode=start_mode,
            open_end=open_end,
            scoring_mode=scoring_mode,
            points_multiplier=points_multiplier,
        )
        self.db.add(competition)
        self.db.commit()
        return competition

    def team(self, name: str) -> models.Team:
        team = models.Team(name=name)
        self.db.add(team)
        self.db.commit()
        return team

    def player(self, name: str, hcp=None, gender=None) -> models.Player:
        player = models.Player(name=name, hcp_exact=hcp, gender=gender)
        self.db.add(player)
        self.db.commit()
        return player

    def participant(
        self,
        competition,
        name: str,
        score=None,
        team=None,
        player=None,
        hcp=None,
        gender=None,
        tee=None,
        manual_total=None,
        is_dq=False,
        is_locked=False,
        teetime="08:00",
    ) -> models.Participant:
        tee_time = models.TeeTime(competition_id=competition.id, teetime=teetime)
        self.db.add(tee_time)
        self.db.flush()
        participant = models.Participant(
            tee_time_id=tee_time.id,
            team_id=team.id if team else None,
            player_id=player.id if player else None,
            tee_id=tee.id if tee else None,
            player_names=name,
            score=list(score) if score is not None else [0] * 18,
            handicap_index=hcp,
            gender=gender,
            manual_score_total=manual_total,
            is_dq=is_dq,
            is_locked=is_locked,
        )
        self.db.add(participant)
        self.db.commit()
        return participant


@pytest.fixture()
def engine():
    # one shared in-memory connection for the whole test
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def factory(db):
    return Factory(db)
