"""
Error taxonomy for the registration platform

Every error carries the HTTP status it maps to; the application renders
them as {"success": false, "error": <message>}.
"""


class RegistrationError(Exception):
    """Base class for errors surfaced to API callers"""
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RegistrationError):
    """Missing or malformed required field"""
    status_code = 400


class VerificationFailure(RegistrationError):
    """Bot check failed, or the uploaded document was rejected"""
    status_code = 400


class NotFoundError(RegistrationError):
    status_code = 404


class DependencyFailure(RegistrationError):
    """An external collaborator (store, mail relay, chat service) failed"""
    status_code = 500


class DuplicateTeamIdError(DependencyFailure):
    def __init__(self, team_id: str):
        super().__init__(f"Team ID already exists: {team_id}")
        self.team_id = team_id
