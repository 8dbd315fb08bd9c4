"""
Payload models for ledger operations.

Invocation arguments arrive as a JSON blob. Each operation validates its blob
against one of these pydantic models before touching the store. Unknown
fields are kept: records are free-form documents beyond their identifiers.
"""

from __future__ import annotations

import json
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import InvalidArgumentError

M = TypeVar("M", bound=BaseModel)


def _identifier(value: Any) -> Any:
    # Registration numbers and ids are often sent as JSON numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if isinstance(value, str):
        value = value.strip()
    return value


class RecordPayload(BaseModel):
    """Base for stored documents."""

    model_config = ConfigDict(extra="allow")

    def to_record(self, doc_type: str) -> dict[str, Any]:
        record = self.model_dump(exclude_unset=True)
        record["docType"] = doc_type
        return record


class EntityPayload(RecordPayload):
    """An entity: the unit where actions take place (a mill, a farm)."""

    entityRegistrationNumber: str = Field(..., min_length=1)
    entityName: Any = None
    entityType: Any = None
    entityDescription: Any = None
    address: Any = None
    contactNumber: Any = None
    contactEmail: Any = None

    @field_validator("entityRegistrationNumber", mode="before")
    @classmethod
    def normalize_id(cls, value: Any) -> Any:
        return _identifier(value)


class EntryPayload(RecordPayload):
    """An entry: an action recorded by an entity (e.g. fabric creation at a mill)."""

    entryId: str = Field(..., min_length=1)
    entityRegistrationNumber: str = Field(..., min_length=1)
    orderId: Optional[str] = None
    entryName: Any = None
    date: Optional[dict[str, Any]] = None
    sustainabilityCert: Optional[list[str]] = None
    carrier: Any = None
    relatedDocuments: Optional[list[str]] = None
    imageLinks: Optional[list[str]] = None
    additionalMetadata: Optional[dict[str, Any]] = None

    @field_validator("entryId", "entityRegistrationNumber", "orderId", mode="before")
    @classmethod
    def normalize_ids(cls, value: Any) -> Any:
        return _identifier(value)


class EntityRef(BaseModel):
    entityRegistrationNumber: str = Field(..., min_length=1)

    @field_validator("entityRegistrationNumber", mode="before")
    @classmethod
    def normalize_id(cls, value: Any) -> Any:
        return _identifier(value)


class EntryRef(BaseModel):
    entryId: str = Field(..., min_length=1)

    @field_validator("entryId", mode="before")
    @classmethod
    def normalize_id(cls, value: Any) -> Any:
        return _identifier(value)


class OrderRef(BaseModel):
    orderId: str = Field(..., min_length=1)

    @field_validator("orderId", mode="before")
    @classmethod
    def normalize_id(cls, value: Any) -> Any:
        return _identifier(value)


class HistoryRequest(BaseModel):
    """Arguments of queryHistoryForKey.

    When docType is given the key is the bare identifier and the storage key
    is docType + key; otherwise key is the full storage key.
    """

    key: str = Field(..., min_length=1)
    docType: Optional[str] = None

    @field_validator("key", mode="before")
    @classmethod
    def normalize_key(cls, value: Any) -> Any:
        return _identifier(value)

    @property
    def storage_key(self) -> str:
        return f"{self.docType}{self.key}" if self.docType else self.key


def load_args(args: str | bytes | None) -> dict[str, Any]:
    """Decode an argument blob into a JSON object.

    Raises:
        InvalidArgumentError: If the blob is not a JSON object
    """
    if args is None or args == "" or args == b"":
        return {}
    try:
        data = json.loads(args)
    except json.JSONDecodeError as e:
        raise InvalidArgumentError(f"Arguments are not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidArgumentError("Arguments must be a JSON object")
    return data


def parse_args(model: type[M], args: str | bytes | None) -> M:
    """Validate an argument blob against a payload model.

    Raises:
        InvalidArgumentError: If the blob is malformed or fails validation
    """
    data = load_args(args)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise InvalidArgumentError(
            f"Invalid {model.__name__}: {'; '.join(errors)}", errors=errors
        ) from e


def equality_filters(data: dict[str, Any]) -> dict[str, Any]:
    """Validate optional list-query filters: field -> scalar value.

    Raises:
        InvalidArgumentError: If a filter value is not a scalar
    """
    filters = {}
    for name, value in data.items():
        if name == "docType":
            continue
        if value is not None and not isinstance(value, (str, int, float, bool)):
            raise InvalidArgumentError(
                f"Filter {name} must be a scalar value", errors=[f"{name}: not a scalar"]
            )
        filters[name] = value
    return filters
