"""
Response envelope decoding for the upstream REST API.

The upstream API wraps payloads inconsistently: ``{"data": ...}``,
``{"<entityKey>": ...}`` or the bare entity. All shape sniffing happens
here, in one fixed fallback order, so call sites only ever see the entity.
"""

import logging
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError

from cia_api.schemas.reports import REPORT_VARIANTS, GenericReport, ReportModel

logger = logging.getLogger(__name__)


class EnvelopeError(ValueError):
    """The payload matched none of the known envelope shapes."""

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload


def decode_envelope(
    payload: Any,
    entity_key: Optional[str] = None,
    required: Iterable[str] = (),
) -> Any:
    """Unwrap a single-entity response.

    Order: ``{"data": x}`` -> ``{entity_key: x}`` -> bare entity carrying
    every ``required`` key. Raises ``EnvelopeError`` otherwise.
    """
    if isinstance(payload, dict):
        if payload.get("data") is not None:
            return payload["data"]
        if entity_key and payload.get(entity_key) is not None:
            return payload[entity_key]
        required = tuple(required)
        if required and all(key in payload for key in required):
            return payload
        if not required and payload and "data" not in payload:
            return payload
    raise EnvelopeError(
        f"Unrecognised response shape"
        f"{f' for {entity_key}' if entity_key else ''}: "
        f"{type(payload).__name__}",
        payload,
    )


def decode_list_envelope(payload: Any, entity_key: Optional[str] = None) -> list[Any]:
    """Unwrap a list response; an empty or missing list decodes to ``[]``."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("data", entity_key):
            if key and key in payload:
                value = payload[key]
                if value is None:
                    return []
                if isinstance(value, list):
                    return value
                if isinstance(value, dict) and entity_key and isinstance(value.get(entity_key), list):
                    return value[entity_key]
        if not payload:
            return []
    raise EnvelopeError(
        f"Unrecognised list response shape"
        f"{f' for {entity_key}' if entity_key else ''}: "
        f"{type(payload).__name__}",
        payload,
    )


def decode_report(kind: str, payload: Any) -> Union[ReportModel, GenericReport]:
    """Decode a report payload into its variant, or degrade to ``GenericReport``."""
    body = payload.get("data", payload) if isinstance(payload, dict) else payload
    if isinstance(body, list) and body and isinstance(body[0], dict):
        # The system report endpoint sometimes answers with a one-element list.
        body = body[0]

    variant = REPORT_VARIANTS.get(kind)
    if variant is None or not isinstance(body, dict):
        return GenericReport(kind=kind, data=body)
    try:
        return variant.model_validate(body)
    except ValidationError as exc:
        logger.warning(f"Report {kind} did not match its schema ({exc.error_count()} errors)")
        return GenericReport(kind=kind, data=body)
