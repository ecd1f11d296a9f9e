import os
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./golf_scoring.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "0") == "1"


class Gender(str, Enum):
    MEN = "men"
    WOMEN = "women"


class NetFallback(str, Enum):
    # ranks a participant without a net score by its gross relative to par
    GROSS = "gross"
    # ranks a participant without a net score after everyone who has one
    LAST = "last"


class ScoringConfig(BaseModel):
    """Constants the scoring engine needs. Pass it in, never read it globally."""

    model_config = ConfigDict(frozen=True)

    holes_per_round: int = 18
    standard_slope_rating: int = 113

    # None -> use the course's total par as course rating
    default_course_rating: Optional[float] = 72.0
    default_slope_rating: int = 113

    default_stroke_index: List[int] = Field(
        default_factory=lambda: [7, 15, 3, 11, 1, 9, 5, 17, 13, 8, 16, 4, 12, 2, 10, 6, 18, 14]
    )
    default_gender: Gender = Gender.MEN
    net_fallback: NetFallback = NetFallback.GROSS
    default_points_multiplier: float = 1.0


DEFAULT_CONFIG = ScoringConfig()
