"""Error taxonomy shared by the handlers.

Each error carries the HTTP status the API boundary maps it to, so handlers
can simply raise and let ``lambda_function`` build the response.
"""
from botocore.exceptions import ClientError, ConnectTimeoutError, EndpointConnectionError, ReadTimeoutError


class InspectionError(Exception):
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict:
        body = {'error': self.message}
        if self.details is not None:
            body['details'] = self.details
        return body


class ValidationError(InspectionError):
    """Missing or malformed input."""
    status_code = 400


class NotFoundError(InspectionError):
    status_code = 404

    def __init__(self, message='Inspection not found', details=None):
        super().__init__(message, details)


class IncompleteDataError(InspectionError):
    """Checklist not fully rated before report generation."""
    status_code = 400

    def __init__(self, message='Inspection checklist is incomplete', details=None):
        super().__init__(message, details)


class InternalError(InspectionError):
    """Store, bucket or topic failure.

    ``retryable`` is set for timeouts and throttling so the caller (or the
    invoking transport) knows a retry may succeed.
    """
    status_code = 500

    def __init__(self, message='Internal server error', details=None, retryable=False):
        super().__init__(message, details)
        self.retryable = retryable

    def to_body(self) -> dict:
        body = super().to_body()
        if self.retryable:
            body['retryable'] = True
        return body


class DuplicateIdError(InternalError):
    """A conditional create found the generated id already taken."""

    def __init__(self, inspection_id):
        super().__init__('Inspection id collision', details=inspection_id, retryable=True)


RETRYABLE_AWS_CODES = {
    'ProvisionedThroughputExceededException',
    'ThrottlingException',
    'Throttling',
    'RequestLimitExceeded',
    'SlowDown',
    'ServiceUnavailable',
    'InternalServerError',
}


def from_aws_error(exc, action):
    """Translate a botocore exception into an InternalError."""
    if isinstance(exc, (ConnectTimeoutError, ReadTimeoutError, EndpointConnectionError)):
        return InternalError(f'{action} timed out', details=str(exc), retryable=True)
    if isinstance(exc, ClientError):
        code = exc.response.get('Error', {}).get('Code', '')
        return InternalError(f'{action} failed', details=str(exc), retryable=code in RETRYABLE_AWS_CODES)
    return InternalError(f'{action} failed', details=str(exc))
