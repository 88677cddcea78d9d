"""
Error taxonomy shared by every core operation.

Handlers in main.py turn these into HTTP responses; nothing below the HTTP
layer should let a raw storage exception escape.
"""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class NotFound(ServiceError):
    status_code = 404


class Forbidden(ServiceError):
    status_code = 403


class Conflict(ServiceError):
    status_code = 409


class DuplicateReview(Conflict):
    def __init__(self, message: str = "You have already reviewed this attraction."):
        super().__init__(message)


class InvalidInput(ServiceError):
    status_code = 400


class Unavailable(ServiceError):
    status_code = 503
