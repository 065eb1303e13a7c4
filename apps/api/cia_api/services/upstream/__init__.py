from cia_api.services.upstream.catalog import RemoteCatalog
from cia_api.services.upstream.client import APIError, CiaApiClient
from cia_api.services.upstream.envelope import (
    EnvelopeError,
    decode_envelope,
    decode_list_envelope,
    decode_report,
)

__all__ = [
    "APIError",
    "CiaApiClient",
    "EnvelopeError",
    "RemoteCatalog",
    "decode_envelope",
    "decode_list_envelope",
    "decode_report",
]
