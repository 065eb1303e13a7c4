"""Error taxonomy for the entity graph.

Every error carries the collection and entity id it concerns when known, so
log lines and API responses can say what was being touched.
"""

from typing import Any, Optional


class CiaError(Exception):
    """Base class for all domain errors."""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        entity_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.collection = collection
        self.entity_id = entity_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "collection": self.collection,
            "id": self.entity_id,
        }


class NotFound(CiaError):
    """The entity id does not exist (get/update paths only; delete is idempotent)."""

    def __init__(self, collection: str, entity_id: str):
        super().__init__(f"{collection}/{entity_id} not found", collection, entity_id)


class DanglingReference(CiaError):
    """A foreign key points at nothing. Never fatal; resolved to a placeholder."""

    def __init__(self, collection: str, entity_id: str):
        super().__init__(
            f"Reference to missing {collection}/{entity_id}", collection, entity_id
        )


class CascadeFailed(CiaError):
    """The atomic multi-document commit did not succeed."""

    def __init__(
        self,
        operation: str,
        collection: str,
        entity_id: str,
        applied: int = 0,
        staged: int = 0,
    ):
        if applied:
            detail = (
                f"{applied} of {staged} writes were applied before the failure; "
                "retry the delete to finish it"
            )
        else:
            detail = "no changes were applied"
        super().__init__(
            f"{operation} of {collection}/{entity_id} failed; {detail}",
            collection,
            entity_id,
        )
        self.operation = operation
        self.applied = applied
        self.staged = staged


class ConcurrentUpdateExceeded(CiaError):
    """Counter increment gave up after repeated write conflicts."""

    def __init__(self, collection: str, entity_id: str, field: str, attempts: int):
        super().__init__(
            f"Could not increment {field} on {collection}/{entity_id} "
            f"after {attempts} attempts",
            collection,
            entity_id,
        )
        self.field = field
        self.attempts = attempts


class StoreUnavailable(CiaError):
    """Transport error or timeout talking to the document store."""

    def __init__(
        self,
        operation: str,
        collection: Optional[str] = None,
        entity_id: Optional[str] = None,
        reason: str = "",
    ):
        target = collection or "store"
        if entity_id:
            target = f"{target}/{entity_id}"
        message = f"Store unavailable during {operation} on {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, collection, entity_id)
        self.operation = operation


class ValidationFailed(CiaError):
    """Payload violates an invariant. Raised before any write is attempted."""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        entity_id: Optional[str] = None,
        issues: Optional[list[dict[str, Any]]] = None,
    ):
        super().__init__(message, collection, entity_id)
        self.issues = issues or []

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["issues"] = self.issues
        return data
