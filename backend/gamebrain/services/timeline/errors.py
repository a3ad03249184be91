class TimelineError(Exception):
    """Base class for failures reported to event submitters."""

    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        body = {'error': self.message}
        if self.details is not None:
            body['details'] = self.details
        return body


class ValidationError(TimelineError):
    status_code = 400


class MissingEventKind(ValidationError):
    def __init__(self):
        super().__init__('Missing event kind', {'field': 'kind'})


class InvalidEvent(ValidationError):
    pass


class UnknownEventKind(ValidationError):
    def __init__(self, kind):
        super().__init__(f'Unknown event kind: {kind}', {'kind': kind})


class SessionNotFound(TimelineError):
    status_code = 404

    def __init__(self, session_id):
        super().__init__('Session not found', {'session_id': session_id})


class SessionExists(TimelineError):
    status_code = 409

    def __init__(self, session_id):
        super().__init__('Session already exists', {'session_id': session_id})


class StorageError(TimelineError):
    status_code = 500
