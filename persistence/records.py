from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, field_validator
from pymongo import ASCENDING

KEY_FIELD = "key"
VALUE_FIELD = "value"

KEY_INDEX_NAME = "key_unique"
KEY_INDEX_KEYS = [(KEY_FIELD, ASCENDING)]


def normalize_key(key: Any) -> str:
    return key if isinstance(key, str) else str(key)


class KeyValueRecord(BaseModel):
    """
    One stored document:
      { "key": "<unique string>", "value": <any non-null payload> }
    """

    key: str
    value: Any

    @field_validator("key", mode="before")
    @classmethod
    def _coerce_key(cls, v: Any) -> str:
        return normalize_key(v)

    @field_validator("value")
    @classmethod
    def _value_required(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("value is required")
        return v

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "KeyValueRecord":
        # Documents already in the collection are trusted as-is.
        return cls.model_construct(key=doc[KEY_FIELD], value=doc.get(VALUE_FIELD))

    def to_document(self) -> dict[str, Any]:
        return {KEY_FIELD: self.key, VALUE_FIELD: self.value}
