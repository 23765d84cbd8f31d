"""Domain errors raised by the engines and mapped to HTTP responses in main."""


class ProgressServiceError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class RoadmapNotFoundError(ProgressServiceError):
    status_code = 404

    def __init__(self, roadmap_id):
        super().__init__(f"Roadmap {roadmap_id} not found")
        self.roadmap_id = roadmap_id


class LevelNotFoundError(ProgressServiceError):
    status_code = 404

    def __init__(self, level_id):
        super().__init__(f"Level {level_id} not found")
        self.level_id = level_id


class MilestoneNotFoundError(ProgressServiceError):
    status_code = 404

    def __init__(self, milestone_id):
        super().__init__(f"Milestone {milestone_id} not found")
        self.milestone_id = milestone_id


class ChallengeNotFoundError(ProgressServiceError):
    status_code = 404

    def __init__(self, challenge_id):
        super().__init__(f"Challenge {challenge_id} not found")
        self.challenge_id = challenge_id


class LevelLockedError(ProgressServiceError):
    """Raised when acting on a level whose predecessor is not completed."""

    status_code = 409

    def __init__(self, level_id):
        super().__init__(f"Level {level_id} is locked")
        self.level_id = level_id


class InvalidPositionError(ProgressServiceError):
    status_code = 422
