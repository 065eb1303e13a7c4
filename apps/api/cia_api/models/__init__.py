from cia_api.models.document import Document

__all__ = [
    "Document",
]
