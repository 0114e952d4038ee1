from __future__ import annotations

from typing import Any, Dict, Type, TypeVar

from fastapi import Request, status
from pydantic import BaseModel, ValidationError
from pydantic.json_schema import models_json_schema

from .errors import ApiError
from .schemas import DoneInput, SubtaskInput, TaskInput

CANNOT_PARSE_JSON = "Cannot parse JSON"

# Largest id a signed 64-bit INTEGER column can hold
MAX_ID = 2**63 - 1

COMPONENT_REF_TEMPLATE = "#/components/schemas/{model}"

ModelT = TypeVar("ModelT", bound=BaseModel)

_BODY_MODELS = (TaskInput, SubtaskInput, DoneInput)


# PUBLIC_INTERFACE
async def read_body(request: Request) -> bytes:
    """
    FastAPI dependency returning the raw request body.

    Handlers decode it themselves with parse_payload so that path checks and
    lookups can run before the body is looked at.
    """
    return await request.body()


# PUBLIC_INTERFACE
def parse_id(raw: str, message: str) -> int:
    """
    Parse a path identifier. Only plain non-negative decimal integers that fit
    a 64-bit column are accepted; anything else is a 400 with the given message.
    """
    if not raw.isascii() or not raw.isdigit():
        raise ApiError(status.HTTP_400_BAD_REQUEST, message)
    value = int(raw)
    if value > MAX_ID:
        raise ApiError(status.HTTP_400_BAD_REQUEST, message)
    return value


# PUBLIC_INTERFACE
def parse_payload(model: Type[ModelT], raw_body: bytes) -> ModelT:
    """
    Decode a JSON object body into the given input model.

    An empty body, malformed JSON, a body that is not an object, or a field of
    the wrong JSON type all yield 400 "Cannot parse JSON".
    """
    if not raw_body.strip():
        raise ApiError(status.HTTP_400_BAD_REQUEST, CANNOT_PARSE_JSON)
    try:
        return model.model_validate_json(raw_body)
    except ValidationError as exc:
        raise ApiError(status.HTTP_400_BAD_REQUEST, CANNOT_PARSE_JSON) from exc


# PUBLIC_INTERFACE
def json_request_body(model: Type[BaseModel]) -> Dict[str, Any]:
    """
    openapi_extra for a route that reads its body through read_body, so the
    exported schema still documents the expected JSON object.
    """
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": {"$ref": COMPONENT_REF_TEMPLATE.format(model=model.__name__)}}},
        }
    }


# PUBLIC_INTERFACE
def request_body_schemas() -> Dict[str, Any]:
    """JSON schemas of the request body models, keyed by component name."""
    _, top_level = models_json_schema(
        [(m, "validation") for m in _BODY_MODELS],
        ref_template=COMPONENT_REF_TEMPLATE,
    )
    return top_level.get("$defs", {})
