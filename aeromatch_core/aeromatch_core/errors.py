"""Domain error taxonomy shared by the engine and the HTTP layer.

Each error subclasses the builtin exception that carries the same meaning,
so callers that only know about ``ValueError`` or ``PermissionError`` still
handle them correctly.  The API maps them to status codes in
``api.main.create_app``:

==========================  ======
Error                       Status
==========================  ======
``DomainValidationError``   400
``AuthorizationError``      403
``NotFoundError``           404
``ConflictError``           409
``ExternalServiceError``    502
==========================  ======
"""

from __future__ import annotations


class AeroMatchError(Exception):
    """Base class for all domain errors."""


class DomainValidationError(AeroMatchError, ValueError):
    """Missing or invalid input, detected before any mutation."""


class AuthorizationError(AeroMatchError, PermissionError):
    """The actor's role or ownership does not permit the operation."""


class NotFoundError(AeroMatchError, LookupError):
    """A referenced entity does not exist."""


class ConflictError(AeroMatchError, RuntimeError):
    """A concurrent writer changed the entity first."""


class ExternalServiceError(AeroMatchError, RuntimeError):
    """A third-party collaborator failed or is not configured."""
