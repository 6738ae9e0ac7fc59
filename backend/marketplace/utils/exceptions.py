from __future__ import annotations
from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base for errors raised below the HTTP layer.

    `status` is the HTTP code the app-wide error handler renders it with.
    """
    status = 500
    title = 'Service Error'

    def __init__(self, code: str = 'SERVICE_ERROR', message: str = 'Service error', details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidTransitionError(ServiceError):
    status = 400
    title = 'Bad Request'

    def __init__(self, current: str, target: str, field_name: str = 'status'):
        super().__init__(
            'INVALID_TRANSITION',
            f'Invalid {field_name} transition {current} -> {target}',
            {'current': current, 'target': target},
        )
        self.current = current
        self.target = target


class ConflictError(ServiceError):
    status = 409
    title = 'Conflict'

    def __init__(self, message: str = 'Document was modified concurrently', details: Optional[Dict[str, Any]] = None):
        super().__init__('CONFLICT', message, details)


class StoreUnavailableError(ServiceError):
    status = 503
    title = 'Service Unavailable'

    def __init__(self, message: str = 'Document store unavailable', details: Optional[Dict[str, Any]] = None):
        super().__init__('STORE_UNAVAILABLE', message, details)


__all__ = ['ServiceError', 'InvalidTransitionError', 'ConflictError', 'StoreUnavailableError']
