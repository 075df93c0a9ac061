"""Errors surfaced at the API boundary.

Each error carries the HTTP status it maps to and a message that is safe to show
to the client. Component-level failures are translated into these by the secret
service so storage and crypto internals never leak.
"""


class SecretShareError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(SecretShareError):
    status_code = 400
    default_message = "Invalid request"


class CaptchaFailedError(SecretShareError):
    status_code = 400
    default_message = "Invalid captcha"


class NotFoundError(SecretShareError):
    status_code = 404
    default_message = "Secret not found"


class NameConflictError(SecretShareError):
    status_code = 409
    default_message = "Custom name is already taken"


class SecretExpiredError(SecretShareError):
    status_code = 410
    default_message = "Secret has expired"


class RateLimitedError(SecretShareError):
    status_code = 429
    default_message = "Rate limit exceeded. Please try again later."


class InternalFailureError(SecretShareError):
    status_code = 500
    default_message = "Internal server error"
