"""Errors raised by the recurring-bill engine.

``status_code`` is a hint for whatever outer layer maps these onto a
response: 4xx for conditions the caller can correct, 5xx when a collaborator
failed and the unit of work was rolled back.
"""

from __future__ import annotations


class BillEngineError(Exception):
    status_code = 400


class NotFoundError(BillEngineError):
    status_code = 404


class AlreadyPaidError(BillEngineError):
    status_code = 409


class NotPaidError(BillEngineError):
    status_code = 409


class InvalidOperationError(BillEngineError):
    status_code = 400


class ConcurrentModificationError(BillEngineError):
    status_code = 409


class DependencyFailureError(BillEngineError):
    status_code = 503
