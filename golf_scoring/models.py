from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base, utcnow


class Player(Base):
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    hcp_exact = Column(Float, nullable=True)      # handicap index, None = unknown
    gender = Column(String, nullable=True)        # men/women

    participations = relationship("Participant", back_populates="player")


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)

    holes = relationship(
        "Hole",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Hole.number",
    )
    tees = relationship("CourseTee", back_populates="course", cascade="all, delete-orphan")
    competitions = relationship("Competition", back_populates="course")


class Hole(Base):
    __tablename__ = "holes"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)

    number = Column(Integer, nullable=False)          # 1..18
    par = Column(Integer, nullable=False)             # 3..6
    stroke_index = Column(Integer, nullable=True)     # 1..18, 1 = hardest

    course = relationship("Course", back_populates="holes")


class CourseTee(Base):
    __tablename__ = "course_tees"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)
    name = Column(String, nullable=False)

    # legacy single rating, used when no per-gender rating exists
    course_rating = Column(Float, nullable=True)
    slope_rating = Column(Integer, nullable=True)

    course = relationship("Course", back_populates="tees")
    ratings = relationship("CourseTeeRating", back_populates="tee", cascade="all, delete-orphan")


class CourseTeeRating(Base):
    __tablename__ = "course_tee_ratings"
    __table_args__ = (UniqueConstraint("tee_id", "gender", name="uq_tee_rating_gender"),)

    id = Column(Integer, primary_key=True, index=True)
    tee_id = Column(Integer, ForeignKey("course_tees.id"), nullable=False)
    gender = Column(String, nullable=False)           # men/women
    course_rating = Column(Float, nullable=False)
    slope_rating = Column(Integer, nullable=False, default=113)

    tee = relationship("CourseTee", back_populates="ratings")


class PointTemplate(Base):
    __tablename__ = "point_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    points_structure = Column(JSON, nullable=False)   # {"1": 100, "2": 80, "default": 10}


class Tour(Base):
    __tablename__ = "tours"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    scoring_mode = Column(String, nullable=False, default="gross")  # gross/net/both
    point_template_id = Column(Integer, ForeignKey("point_templates.id"), nullable=True)

    point_template = relationship("PointTemplate")
    competitions = relationship("Competition", back_populates="tour")


class Competition(Base):
    __tablename__ = "competitions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)
    tour_id = Column(Integer, ForeignKey("tours.id"), nullable=True)
    tee_id = Column(Integer, ForeignKey("course_tees.id"), nullable=True)

    points_multiplier = Column(Float, nullable=False, default=1.0)
    scoring_mode = Column(String, nullable=True)      # overrides the tour's mode

    start_mode = Column(String, nullable=False, default="scheduled")  # scheduled/open
    open_end = Column(DateTime, nullable=True)

    is_results_final = Column(Boolean, nullable=False, default=False)
    results_finalized_at = Column(DateTime, nullable=True)

    course = relationship("Course", back_populates="competitions")
    tour = relationship("Tour", back_populates="competitions")
    tee = relationship("CourseTee")
    tee_times = relationship("TeeTime", back_populates="competition", cascade="all, delete-orphan")
    results = relationship("CompetitionResult", back_populates="competition", cascade="all, delete-orphan")


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)

    participants = relationship("Participant", back_populates="team")


class TeeTime(Base):
    __tablename__ = "tee_times"

    id = Column(Integer, primary_key=True, index=True)
    competition_id = Column(Integer, ForeignKey("competitions.id"), nullable=False)
    teetime = Column(String, nullable=True)           # "08:10"
    start_hole = Column(Integer, nullable=False, default=1)

    competition = relationship("Competition", back_populates="tee_times")
    participants = relationship(
        "Participant",
        back_populates="tee_time",
        cascade="all, delete-orphan",
        order_by="Participant.tee_order",
    )


class Participant(Base):
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, index=True)
    tee_time_id = Column(Integer, ForeignKey("tee_times.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=True)
    tee_id = Column(Integer, ForeignKey("course_tees.id"), nullable=True)

    tee_order = Column(Integer, nullable=False, default=1)
    player_names = Column(String, nullable=True)      # guests without a player row

    # one entry per hole: >0 strokes, 0 not reported, -1 picked up
    score = Column(JSON, nullable=False, default=list)
    handicap_index = Column(Float, nullable=True)     # snapshot taken at tee-off
    gender = Column(String, nullable=True)
    manual_score_total = Column(Integer, nullable=True)

    is_locked = Column(Boolean, nullable=False, default=False)
    locked_at = Column(DateTime, nullable=True)
    is_dq = Column(Boolean, nullable=False, default=False)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    tee_time = relationship("TeeTime", back_populates="participants")
    team = relationship("Team", back_populates="participants")
    player = relationship("Player", back_populates="participations")
    tee = relationship("CourseTee")


class CompetitionResult(Base):
    __tablename__ = "competition_results"
    __table_args__ = (
        UniqueConstraint("participant_id", "scoring_type", name="uq_result_participant_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    competition_id = Column(Integer, ForeignKey("competitions.id"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=False)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=True, index=True)
    scoring_type = Column(String, nullable=False, default="gross")  # gross/net

    position = Column(Integer, nullable=False)        # 0 = DQ/DNF
    points = Column(Integer, nullable=True)

    gross_score = Column(Integer, nullable=True)
    net_score = Column(Integer, nullable=True)
    relative_to_par = Column(Integer, nullable=True)
    net_relative_to_par = Column(Integer, nullable=True)
    holes_played = Column(Integer, nullable=False, default=0)
    course_handicap = Column(Integer, nullable=True)
    is_dq = Column(Boolean, nullable=False, default=False)
    is_dnf = Column(Boolean, nullable=False, default=False)

    calculated_at = Column(DateTime, nullable=False, default=utcnow)

    competition = relationship("Competition", back_populates="results")
    participant = relationship("Participant")
    player = relationship("Player")
