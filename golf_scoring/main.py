from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from sqlalchemy.orm import Session

from . import leaderboard, results
from .config import LOG_JSON, LOG_LEVEL
from .db import get_db, init_db
from .exceptions import (
    EntityNotFoundError,
    FinalizationError,
    InvalidScoreError,
    ResultsFinalError,
    ScorecardLockedError,
)
from .logging_config import configure_logging
from .schemas import (
    FinalizeResponse,
    HoleScoreUpdate,
    LeaderboardResponse,
    ScorecardOut,
    ScoringType,
    TeamLeaderboardEntry,
    TourStanding,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(LOG_LEVEL, LOG_JSON)
    init_db()
    yield


app = FastAPI(title="Golf Scoring", lifespan=lifespan)


# ---------------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"ok": True}


#--------------------------------------------------------------------------------
#--------------------------------- LEADERBOARDS ---------------------------------
#--------------------------------------------------------------------------------

@app.get("/competitions/{competition_id}/leaderboard", response_model=LeaderboardResponse)
def competition_leaderboard(
    competition_id: int,
    scoring_type: Optional[ScoringType] = None,
    db: Session = Depends(get_db),
):
    try:
        return leaderboard.get_leaderboard_with_details(db, competition_id, scoring_type)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/competitions/{competition_id}/team-leaderboard", response_model=List[TeamLeaderboardEntry])
def competition_team_leaderboard(competition_id: int, db: Session = Depends(get_db)):
    try:
        return leaderboard.get_team_leaderboard(db, competition_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


#--------------------------------------------------------------------------------
#----------------------------------- RESULTS ------------------------------------
#--------------------------------------------------------------------------------

@app.post("/competitions/{competition_id}/finalize", response_model=FinalizeResponse)
def finalize_competition(competition_id: int, force: bool = False, db: Session = Depends(get_db)):
    try:
        finalized = results.finalize_competition_results(db, competition_id, force=force)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except FinalizationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return FinalizeResponse(competition_id=competition_id, finalized=finalized)


@app.get("/tours/{tour_id}/standings", response_model=List[TourStanding])
def tour_standings(
    tour_id: int,
    scoring_type: ScoringType = ScoringType.GROSS,
    db: Session = Depends(get_db),
):
    try:
        return results.get_tour_standings(db, tour_id, scoring_type)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


#--------------------------------------------------------------------------------
#---------------------------------- SCORE ENTRY ---------------------------------
#--------------------------------------------------------------------------------

@app.put("/participants/{participant_id}/holes/{hole}", response_model=ScorecardOut)
def put_hole_score(
    participant_id: int,
    hole: int,
    data: HoleScoreUpdate,
    db: Session = Depends(get_db),
):
    try:
        p = leaderboard.update_hole_score(db, participant_id, hole, data.shots)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (ScorecardLockedError, ResultsFinalError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidScoreError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return ScorecardOut(participant_id=p.id, score=list(p.score), is_locked=bool(p.is_locked))
