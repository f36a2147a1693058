from fastapi import HTTPException, status


class GolfCourseError(Exception):
    """Base exception for Golf Course."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code
        super().__init__(message)


class SubmissionRejected(GolfCourseError):
    """Submitted code failed to run or produced the wrong output."""

    pass


# HTTP Exceptions
def not_found(detail: str = "Resource not found") -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


def forbidden(detail: str = "Forbidden") -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def unprocessable(detail: str | dict = "Unprocessable entity") -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)
