"""Error taxonomy of the scoring core.

- ``NotFoundError``: a referenced idea or developer does not exist.
  Propagated to the caller (HTTP 404).
- ``ExternalServiceError``: the completion service or a store read timed
  out or failed.  Engines recover locally with a deterministic fallback;
  only surfaces (HTTP 503) when no fallback exists.
- ``ValidationError``: malformed or empty required input, rejected before
  any computation starts (HTTP 422).
"""

from __future__ import annotations


class ScoringError(Exception):
    """Base class for all errors raised by the scoring core."""


class NotFoundError(ScoringError):
    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ExternalServiceError(ScoringError):
    def __init__(self, service: str, reason: str):
        self.service = service
        self.reason = reason
        super().__init__(f"{service} unavailable: {reason}")


class ValidationError(ScoringError):
    pass
