class SchedulingError(Exception):
    """Base error for requests the scheduler refuses"""
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class UnknownTeacherError(SchedulingError):
    status_code = 404

    def __init__(self, identifier):
        super().__init__(f"Unknown teacher: {identifier}")
        self.identifier = identifier


class HourLimitExceeded(SchedulingError):
    """A manual addition would take a teacher past the weekly ceiling"""
    status_code = 409
