from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from golf_scoring import leaderboard, models, results
from golf_scoring.db import init_db, make_engine
from golf_scoring.exceptions import (
    CompetitionNotFoundError,
    FinalizationError,
    ResultsFinalError,
    TourNotFoundError,
)
from golf_scoring.schemas import ScoringMode, ScoringType

from conftest import DAY_AFTER, Factory, round_score

TABLE = {"1": 100, "2": 80, "default": 10}


def stored_rows(db, competition_id: int):
    return (
        db.query(models.CompetitionResult)
        .filter(models.CompetitionResult.competition_id == competition_id)
        .all()
    )


def test_required_scoring_types() -> None:
    assert results.required_scoring_types(ScoringMode.GROSS) == [ScoringType.GROSS]
    assert results.required_scoring_types(ScoringMode.NET) == [ScoringType.GROSS, ScoringType.NET]
    assert results.required_scoring_types(ScoringMode.BOTH) == [ScoringType.GROSS, ScoringType.NET]


def test_finalize_writes_one_row_per_participant_and_is_idempotent(db, factory) -> None:
    """A second finalize is a no-op and never duplicates rows."""

    competition = factory.competition()
    factory.participant(competition, "Anna", score=round_score(-1))
    factory.participant(competition, "Bob", score=round_score(0, holes=9))
    factory.participant(competition, "Cleo", score=round_score(-3), is_dq=True)

    assert results.finalize_competition_results(db, competition.id, now=DAY_AFTER) is True
    assert results.finalize_competition_results(db, competition.id, now=DAY_AFTER) is False

    rows = stored_rows(db, competition.id)
    assert len(rows) == 3
    assert {r.scoring_type for r in rows} == {"gross"}

    db.refresh(competition)
    assert competition.is_results_final is True
    assert competition.results_finalized_at == DAY_AFTER

    stored = results.get_competition_results(db, competition.id)
    assert [(r.position, r.gross_score) for r in stored] == [(1, 71), (0, 36), (0, 69)]
    assert all(r.points is None for r in stored)


def test_finalize_net_competition_stores_both_types(db, factory) -> None:
    competition = factory.competition(scoring_mode="net")
    factory.participant(competition, "Anna", score=round_score(0), hcp=10.0)
    factory.participant(competition, "Bob", score=round_score(-2), hcp=2.0)

    results.finalize_competition_results(db, competition.id, now=DAY_AFTER)

    rows = stored_rows(db, competition.id)
    assert len(rows) == 4

    net = results.get_competition_results(db, competition.id, ScoringType.NET)
    assert [(r.net_score, r.position) for r in net] == [(62, 1), (68, 2)]
    gross = results.get_competition_results(db, competition.id, ScoringType.GROSS)
    assert [(r.gross_score, r.position) for r in gross] == [(70, 1), (72, 2)]


def test_finalized_leaderboard_served_from_snapshot(db, factory) -> None:
    tour = factory.tour(points_structure=TABLE)
    competition = factory.competition(tour=tour)
    anna = factory.participant(competition, "Anna", score=round_score(1))
    factory.participant(competition, "Bob", score=round_score(2))

    results.finalize_competition_results(db, competition.id, now=DAY_AFTER)

    # edit behind the snapshot's back
    anna.score = round_score(9)
    db.commit()

    response = leaderboard.get_leaderboard_with_details(db, competition.id, now=DAY_AFTER)

    assert response.is_results_final is True
    first = response.entries[0]
    assert (first.player_name, first.relative_to_par, first.points) == ("Anna", 1, 100)
    assert first.is_projected is False


def test_final_results_block_score_entry(db, factory) -> None:
    competition = factory.competition()
    anna = factory.participant(competition, "Anna", score=round_score(0))
    results.finalize_competition_results(db, competition.id, now=DAY_AFTER)

    with pytest.raises(ResultsFinalError):
        leaderboard.update_hole_score(db, anna.id, 1, 3)


def test_recalculate_rewrites_snapshot(db, factory) -> None:
    competition = factory.competition()
    anna = factory.participant(competition, "Anna", score=round_score(0))
    results.finalize_competition_results(db, competition.id, now=DAY_AFTER)

    anna.score = round_score(3)
    db.commit()
    assert results.recalculate_results(db, competition.id, now=DAY_AFTER) is True

    [row] = stored_rows(db, competition.id)
    assert row.gross_score == 75


def test_failed_finalize_rolls_back_everything(db, factory, monkeypatch) -> None:
    """Rows written before the failure disappear and the flag stays false."""

    competition = factory.competition(scoring_mode="net")
    factory.participant(competition, "Anna", score=round_score(0), hcp=10.0)

    compute = results.compute_leaderboard

    def failing_on_net(ctx, participants, ranked_by=None):
        if ranked_by == ScoringType.NET:
            raise SQLAlchemyError("connection lost")
        return compute(ctx, participants, ranked_by)

    monkeypatch.setattr(results, "compute_leaderboard", failing_on_net)

    with pytest.raises(FinalizationError):
        results.finalize_competition_results(db, competition.id, now=DAY_AFTER)

    assert stored_rows(db, competition.id) == []
    assert results.is_competition_finalized(db, competition.id) is False


def test_duplicate_rows_fail_finalization(db, factory) -> None:
    competition = factory.competition()
    anna = factory.participant(competition, "Anna", score=round_score(0))
    db.add(models.CompetitionResult(
        competition_id=competition.id,
        participant_id=anna.id,
        scoring_type="gross",
        position=1,
        calculated_at=DAY_AFTER,
    ))
    db.commit()

    with pytest.raises(FinalizationError):
        results.finalize_competition_results(db, competition.id, now=DAY_AFTER)

    assert results.is_competition_finalized(db, competition.id) is False
    assert len(stored_rows(db, competition.id)) == 1


def test_finalize_unknown_competition(db) -> None:
    with pytest.raises(CompetitionNotFoundError):
        results.finalize_competition_results(db, 999)


def test_batch_continues_after_a_failing_competition(db, factory, monkeypatch) -> None:
    course = factory.course()
    broken = factory.competition(course=course)
    healthy = factory.competition(course=course)
    done = factory.competition(course=course)
    upcoming = factory.competition(course=course, day=date(2026, 6, 20))
    still_open = factory.competition(course=course, start_mode="open", open_end=DAY_AFTER.replace(day=5))
    for competition in (broken, healthy, done, upcoming, still_open):
        factory.participant(competition, "Anna", score=round_score(0))

    results.finalize_competition_results(db, done.id, now=DAY_AFTER)
    broken_id = broken.id

    compute = results.compute_leaderboard

    def failing_for_broken(ctx, participants, ranked_by=None):
        if ctx.competition.id == broken_id:
            raise RuntimeError("bad data")
        return compute(ctx, participants, ranked_by)

    monkeypatch.setattr(results, "compute_leaderboard", failing_for_broken)

    summary = results.finalize_due_competitions(db, now=DAY_AFTER)

    assert (summary.processed, summary.skipped, summary.errors) == (1, 1, 1)
    assert summary.total == 3
    assert summary.failed_competition_ids == [broken_id]

    assert results.is_competition_finalized(db, healthy.id) is True
    assert results.is_competition_finalized(db, broken_id) is False
    assert results.is_competition_finalized(db, upcoming.id) is False
    assert results.is_competition_finalized(db, still_open.id) is False


def test_tour_standings_sum_final_points(db, factory) -> None:
    """Only finalized competitions and ranked positions contribute."""

    course = factory.course()
    tour = factory.tour(points_structure=TABLE)
    anna = factory.player("Anna")
    bob = factory.player("Bob")
    cleo = factory.player("Cleo")

    first = factory.competition(course=course, tour=tour)
    factory.participant(first, "Anna", score=round_score(-1), player=anna)
    factory.participant(first, "Bob", score=round_score(2), player=bob)
    factory.participant(first, "Cleo", score=round_score(-3), player=cleo, is_dq=True)

    second = factory.competition(course=course, tour=tour)
    factory.participant(second, "Anna", score=round_score(3), player=anna)
    factory.participant(second, "Bob", score=round_score(0), player=bob)

    unfinished = factory.competition(course=course, tour=tour)
    factory.participant(unfinished, "Anna", score=round_score(-3), player=anna)

    results.finalize_competition_results(db, first.id, now=DAY_AFTER)
    results.finalize_competition_results(db, second.id, now=DAY_AFTER)

    standings = results.get_tour_standings(db, tour.id)

    assert [(s.player_name, s.total_points, s.competitions_played, s.position) for s in standings] == [
        ("Anna", 180, 2, 1),
        ("Bob", 180, 2, 1),
    ]


def test_tour_standings_unknown_tour(db) -> None:
    with pytest.raises(TourNotFoundError):
        results.get_tour_standings(db, 999)


def test_finalize_without_timestamp_records_naive_utc(db, factory) -> None:
    competition = factory.competition()
    factory.participant(competition, "Anna", score=round_score(0))

    results.finalize_competition_results(db, competition.id)

    db.refresh(competition)
    assert competition.results_finalized_at is not None
    assert competition.results_finalized_at.tzinfo is None
    [row] = stored_rows(db, competition.id)
    assert row.calculated_at == competition.results_finalized_at


def test_finalize_racing_another_writer_is_a_no_op(tmp_path, monkeypatch) -> None:
    """Another session finalizes between our flag check and our commit."""

    engine = make_engine(f"sqlite:///{tmp_path / 'race.db'}")
    init_db(engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = Session()
    other = Session()
    try:
        factory = Factory(db)
        competition = factory.competition(scoring_mode="net")
        anna = factory.participant(competition, "Anna", score=round_score(0), hcp=10.0)
        bob = factory.participant(competition, "Bob", score=round_score(2), hcp=4.0)
        competition_id = competition.id
        participant_ids = [anna.id, bob.id]

        write_snapshot = results._write_snapshot

        def finalized_elsewhere_first(session, cid, config, now):
            rival = other.get(models.Competition, cid)
            for position, pid in enumerate(participant_ids, start=1):
                for scoring_type in ("gross", "net"):
                    other.add(models.CompetitionResult(
                        competition_id=cid,
                        participant_id=pid,
                        scoring_type=scoring_type,
                        position=position,
                        calculated_at=now,
                    ))
            rival.is_results_final = True
            rival.results_finalized_at = now
            other.commit()
            return write_snapshot(session, cid, config, now)

        monkeypatch.setattr(results, "_write_snapshot", finalized_elsewhere_first)

        assert results.finalize_competition_results(db, competition_id, now=DAY_AFTER) is False

        rows = stored_rows(db, competition_id)
        assert sorted((r.participant_id, r.scoring_type) for r in rows) == [
            (anna.id, "gross"),
            (anna.id, "net"),
            (bob.id, "gross"),
            (bob.id, "net"),
        ]
        assert results.is_competition_finalized(db, competition_id) is True
    finally:
        db.close()
        other.close()
        engine.dispose()
