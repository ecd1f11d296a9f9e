from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .config import Gender


class ScoringMode(str, Enum):
    GROSS = "gross"
    NET = "net"
    BOTH = "both"


class ScoringType(str, Enum):
    GROSS = "gross"
    NET = "net"


class TeamStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    FINISHED = "FINISHED"


# rank as string ("1", "2", ...) -> points, plus a "default" entry
PointsTable = Dict[str, int]


# --------------------------------------------------------------------------------
# ----------------------------- Collaborator contracts ---------------------------
# --------------------------------------------------------------------------------

class TeeRating(BaseModel):
    gender: Gender
    course_rating: float
    slope_rating: int = 113


class TeeData(BaseModel):
    id: Optional[int] = None
    name: str = ""
    # legacy single rating stored on the tee itself
    course_rating: Optional[float] = None
    slope_rating: Optional[int] = None
    ratings: List[TeeRating] = Field(default_factory=list)


class CourseData(BaseModel):
    pars: List[int]
    stroke_index: Optional[List[int]] = None

    @property
    def total_par(self) -> int:
        return sum(self.pars)


class ParticipantData(BaseModel):
    id: int
    name: str = ""
    score: List[int] = Field(default_factory=list)
    handicap_index: Optional[float] = None
    gender: Optional[Gender] = None
    tee: Optional[TeeData] = None
    is_dq: bool = False
    is_locked: bool = False
    manual_total: Optional[int] = None
    team_id: Optional[int] = None
    team_name: str = ""
    tee_time_id: Optional[int] = None
    start_time: Optional[str] = None
    player_id: Optional[int] = None


class CompetitionData(BaseModel):
    id: int
    tour_id: Optional[int] = None
    points_multiplier: float = 1.0
    scoring_mode: ScoringMode = ScoringMode.GROSS
    window_closed: bool = False
    is_results_final: bool = False
    tee: Optional[TeeData] = None
    points_table: Optional[PointsTable] = None

    @property
    def is_tour_competition(self) -> bool:
        return self.tour_id is not None


# --------------------------------------------------------------------------------
# ---------------------------------- Outputs -------------------------------------
# --------------------------------------------------------------------------------

class LeaderboardEntry(BaseModel):
    participant_id: int
    player_id: Optional[int] = None
    player_name: str = ""
    team_id: Optional[int] = None
    team_name: str = ""
    tee_time_id: Optional[int] = None
    start_time: Optional[str] = None
    score: List[int] = Field(default_factory=list)

    gross_total: int = 0
    holes_played: int = 0
    relative_to_par: int = 0
    has_unreported_hole: bool = False

    handicap_index: Optional[float] = None
    course_handicap: Optional[int] = None
    strokes_per_hole: Optional[List[int]] = None
    net_total: Optional[int] = None
    net_relative_to_par: Optional[int] = None
    # net ranking used the gross figure because no net score exists
    ranked_by_gross: bool = False

    position: int = 0
    points: Optional[int] = None
    is_projected: Optional[bool] = None

    is_dq: bool = False
    is_dnf: bool = False
    is_locked: bool = False


class TeeInfo(BaseModel):
    id: Optional[int] = None
    name: str
    course_rating: float
    slope_rating: int
    stroke_index: List[int]


class LeaderboardResponse(BaseModel):
    competition_id: int
    scoring_mode: ScoringMode
    ranked_by: ScoringType
    is_tour_competition: bool
    is_results_final: bool
    tee: Optional[TeeInfo] = None
    entries: List[LeaderboardEntry]


class TeamLeaderboardEntry(BaseModel):
    team_id: Optional[int]
    team_name: str
    status: TeamStatus
    start_time: Optional[str] = None
    display_progress: str
    total_relative_score: Optional[int] = None
    total_shots: Optional[int] = None
    position: int = 0
    team_points: Optional[int] = None


class HoleScoreUpdate(BaseModel):
    shots: int


class ScorecardOut(BaseModel):
    participant_id: int
    score: List[int]
    is_locked: bool


class FinalizeResponse(BaseModel):
    competition_id: int
    finalized: bool


class FinalizeSummary(BaseModel):
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    failed_competition_ids: List[int] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.processed + self.skipped + self.errors


class StoredResult(BaseModel):
    competition_id: int
    participant_id: int
    player_id: Optional[int] = None
    scoring_type: ScoringType
    position: int
    points: Optional[int] = None
    gross_score: Optional[int] = None
    net_score: Optional[int] = None
    relative_to_par: Optional[int] = None
    calculated_at: datetime


class TourStanding(BaseModel):
    player_id: int
    player_name: str
    total_points: int
    competitions_played: int
    position: int
