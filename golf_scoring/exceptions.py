"""
Exceptions raised by the scoring engine.

Input-shape problems (short score arrays, bad stroke index, unrated tees)
are never raised: the calculators degrade instead. Everything here is a
referential, score-entry or persistence failure the caller has to see.
"""


class ScoringError(Exception):
    """Base exception for the scoring engine."""

    pass


class EntityNotFoundError(ScoringError):
    """Entity not found in database."""

    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with ID {entity_id} not found")


class CompetitionNotFoundError(EntityNotFoundError):
    def __init__(self, competition_id):
        super().__init__("Competition", competition_id)


class ParticipantNotFoundError(EntityNotFoundError):
    def __init__(self, participant_id):
        super().__init__("Participant", participant_id)


class TourNotFoundError(EntityNotFoundError):
    def __init__(self, tour_id):
        super().__init__("Tour", tour_id)


class InvalidScoreError(ScoringError):
    """Hole number or shots value rejected on score entry."""

    pass


class ScorecardLockedError(ScoringError):
    """Scorecard is locked and cannot be modified."""

    def __init__(self, participant_id):
        self.participant_id = participant_id
        super().__init__(f"Scorecard of participant {participant_id} is locked")


class ResultsFinalError(ScoringError):
    """Competition results are final, scores can no longer change."""

    def __init__(self, competition_id):
        self.competition_id = competition_id
        super().__init__(f"Results of competition {competition_id} are final")


class FinalizationError(ScoringError):
    """Writing the results snapshot failed and was rolled back."""

    def __init__(self, competition_id, message: str = "Results finalization failed"):
        self.competition_id = competition_id
        self.message = message
        super().__init__(f"{message} (competition {competition_id})")
