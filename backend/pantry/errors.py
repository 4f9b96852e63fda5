# Overview: Error taxonomy shared by services and routes.

"""
Every failure a service can raise derives from PantryError and carries the
HTTP status the API answers with. Routes never guess: the app-level error
handler reads `status_code` off the exception.

- ValidationError:    caller contract violation, nothing written (400)
- AuthorizationError: role or ownership check failed before any write (403)
- NotFoundError:      referenced entity missing or outside the tenant (404)
- ConflictError:      state conflict (used invite, duplicate email, stale version) (409)
- UnavailableError:   database unreachable or locked (503)
"""


class PantryError(Exception):
    status_code = 500

    def __init__(self, message: str = "", **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.message or self.__class__.__name__}
        payload.update(self.details)
        return payload


class ValidationError(PantryError, ValueError):
    """400-level input problem."""
    status_code = 400


class AuthorizationError(PantryError):
    """403-level role or ownership failure."""
    status_code = 403


class NotFoundError(PantryError, LookupError):
    """404-level missing entity."""
    status_code = 404


class ConflictError(PantryError):
    """409-level business rule conflict."""
    status_code = 409


class UnavailableError(PantryError):
    """503-level storage outage."""
    status_code = 503
