"""Race lobby exceptions.

Caller-facing errors carry a machine-readable ``code`` and the HTTP status the
API layer answers with. None of them changes state.
"""


class MarbleRoyaleError(Exception):
    """Base class for every lobby/race error."""
    code = 'error'
    status_code = 400
    message = 'Request rejected'

    def __init__(self, message=None):
        super().__init__(message or self.message)

    def to_dict(self):
        return {'error': str(self), 'code': self.code}


# ============ Join errors ============

class InvalidName(MarbleRoyaleError):
    """Trimmed name is empty or longer than the configured limit."""
    code = 'invalid_name'
    status_code = 400
    message = 'Username is required.'


class DuplicateName(MarbleRoyaleError):
    """Name already taken in this lobby (case-insensitive)."""
    code = 'duplicate_name'
    status_code = 409
    message = 'Username already joined.'

    def __init__(self, name):
        self.name = name
        super().__init__(f"Username '{name}' already joined.")


class AlreadyJoined(MarbleRoyaleError):
    """Visitor already has a name in this lobby."""
    code = 'already_joined'
    status_code = 409
    message = 'You have already joined this lobby.'


# ============ Phase errors ============

class RaceInProgress(MarbleRoyaleError):
    """Join or force start attempted while a race is running."""
    code = 'race_in_progress'
    status_code = 409
    message = 'Race in progress. Please join the next race.'


class ForceStartDisabled(MarbleRoyaleError):
    code = 'force_start_disabled'
    status_code = 403
    message = 'Force start is disabled.'


# ============ Internal faults ============

class InvalidStateTransition(MarbleRoyaleError):
    """Programming fault: an operation ran against the wrong phase or race."""
    code = 'invalid_state_transition'
    status_code = 500
    message = 'Invalid state transition'
