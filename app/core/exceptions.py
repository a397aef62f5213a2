from fastapi import HTTPException, status


class ValidationFailure(HTTPException):
    """Input was well-formed JSON but breaks a business rule."""

    def __init__(self, detail: str = "Validation failed"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class NotFoundError(HTTPException):
    """Resource is missing or not owned by the caller."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
        )


class ConflictError(HTTPException):
    """Duplicate email or double-booked slot.

    Reported as 400 to match the public API contract.
    """

    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class AccountLockedError(HTTPException):
    def __init__(
        self,
        detail: str = "Account is temporarily locked due to multiple failed login attempts"
    ):
        super().__init__(
            status_code=status.HTTP_423_LOCKED,
            detail=detail,
        )
