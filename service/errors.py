"""
Error taxonomy for the correlation service.

Every error carries a `context` dict with identifying metadata (alert ID,
report ID, queue URL, offending payload) so the HTTP layer can log and
return it without parsing messages.

  AlreadyExistsError  : conditional create hit an existing record.
                        Expected: the repository turns it into a flag.
  RecordNotFoundError : point read found nothing.
  StoreError          : any other record store failure.
  QueueError          : a message could not be published.
  SerializationError  : a payload could not be encoded or decoded.
  InspectorError      : the inspector callback itself raised.
"""

from typing import Any


class ServiceError(Exception):
    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: dict = dict(context)

    def with_context(self, **context: Any) -> "ServiceError":
        """Attach more metadata and return self, for `raise err.with_context(...)`."""
        self.context.update(context)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        pairs = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.message} ({pairs})"


class AlreadyExistsError(ServiceError):
    pass


class RecordNotFoundError(ServiceError):
    pass


class StoreError(ServiceError):
    pass


class QueueError(ServiceError):
    pass


class SerializationError(ServiceError):
    pass


class InspectorError(ServiceError):
    pass
