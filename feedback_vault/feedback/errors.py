"""Feedback error taxonomy - each error knows its HTTP status"""


class FeedbackError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FeedbackError):
    """Client omitted a required field"""
    status_code = 400


class NotFound(FeedbackError):
    status_code = 404


class MethodNotAllowed(FeedbackError):
    status_code = 405


class InternalError(FeedbackError):
    """Anything unexpected; always logged before responding"""
    status_code = 500
