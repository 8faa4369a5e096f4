from fastapi import HTTPException


class ValidationError(HTTPException):
    """Missing or malformed input"""
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class PreconditionError(ValidationError):
    """Operation is valid but the resource is not in the required state yet"""


class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(status_code=401, detail=detail)


class PermissionDeniedError(HTTPException):
    """Actor is not the owner of the resource or has the wrong role"""
    def __init__(self, detail: str = "Not authorized"):
        super().__init__(status_code=403, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=404, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=409, detail=detail)
