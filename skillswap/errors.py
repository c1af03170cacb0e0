class SkillSwapError(Exception):
    """Base class for business outcomes the API layer reports to the caller."""

    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'success': False, 'message': self.message}


class NotFound(SkillSwapError):
    status_code = 404


class ValidationError(SkillSwapError):
    status_code = 400

    def __init__(self, message, errors=None):
        super().__init__(message)
        # [{'field': ..., 'message': ...}]
        self.errors = errors or []

    def to_dict(self):
        payload = super().to_dict()
        if self.errors:
            payload['errors'] = self.errors
        return payload


class ConflictError(SkillSwapError):
    status_code = 409


class Forbidden(SkillSwapError):
    status_code = 403


class InvalidState(SkillSwapError):
    status_code = 400


class InfrastructureError(SkillSwapError):
    """Persistence failure. The message is generic; detail goes to the log only."""

    status_code = 500

    def __init__(self, message='Server error'):
        super().__init__(message)
