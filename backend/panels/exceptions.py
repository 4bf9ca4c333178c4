"""Error taxonomy shared by the panel repository, lifecycle manager and views.

Every failure is scoped to the operation that raised it. Views turn these into
a plain-text message with `status_code`.
"""


class PanelsError(Exception):
    status_code = 500
    default_message = 'Internal error'

    def __init__(self, message=None, status_code=None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(PanelsError):
    """Bad caller input (empty name, invalid time range, no selection...)."""
    status_code = 400
    default_message = 'Invalid input'


class InvalidTimeRange(ValidationError):
    default_message = 'Invalid Time Interval'


class MissingSelection(ValidationError):
    default_message = 'Please make a valid selection'


class NotFound(PanelsError):
    status_code = 404
    default_message = 'Not found'


class UpstreamFailure(PanelsError):
    """Document store or query service failure; carries the upstream status when known."""
    status_code = 500
    default_message = 'Upstream service failure'
