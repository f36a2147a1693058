from golfcourse.api.routes import contest, execute, problems, submissions

__all__ = [
    "contest",
    "execute",
    "problems",
    "submissions",
]
