"""
Client side purchase intake: drives the purchase invoice form against the
retailhub REST API.
"""
from .client import RetailHubClient
from .exceptions import (
    CollaboratorError, IntakeClosed, IntakeError, ProductResolutionRequired, SubmissionBlocked, SubmissionFailed,
)
from .form import PurchaseIntake
from .lookup import DebouncedLookup, RequestToken, RequestTracker

__all__ = [
    'RetailHubClient',
    'PurchaseIntake',
    'DebouncedLookup',
    'RequestToken',
    'RequestTracker',
    'IntakeError',
    'CollaboratorError',
    'SubmissionBlocked',
    'SubmissionFailed',
    'ProductResolutionRequired',
    'IntakeClosed',
]
