from golfcourse.db.models.contest import ContestSettings
from golfcourse.db.models.submission import Submission

__all__ = [
    "ContestSettings",
    "Submission",
]
