"""Letters: message bodies together with where they are going."""

from __future__ import annotations

import base64
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass
class Envelope:
    """The address details of where a letter is going."""

    exchange: str = ""
    routing_key: str = ""
    content_type: str = ""
    mandatory: bool = False
    immediate: bool = False
    headers: dict[str, Any] | None = None
    delivery_mode: int = 0


@dataclass
class Letter:
    """A message body and the envelope that addresses it."""

    letter_id: int = 0
    retry_count: int = 0
    body: bytes = b""
    envelope: Envelope | None = None


def _require_mapping(data: Any, what: str) -> Mapping:
    if not isinstance(data, Mapping):
        raise TypeError(f"{what} expects a mapping, got {type(data).__name__}")
    return data


@dataclass
class ModdedBody:
    """A payload together with indicators of how it was modified."""

    encrypted: bool = False
    encryption_type: str = ""
    compressed: bool = False
    compression_type: str = ""
    utc_date_time: str = ""
    data: bytes = b""

    def _to_json(self) -> dict[str, Any]:
        result: dict[str, Any] = {"Encrypted": self.encrypted}
        if self.encryption_type:
            result["EncryptionType"] = self.encryption_type
        result["Compressed"] = self.compressed
        if self.compression_type:
            result["CompressionType"] = self.compression_type
        result["UTCDateTime"] = self.utc_date_time
        result["Data"] = base64.b64encode(self.data).decode("ascii")
        return result

    @classmethod
    def _from_json(cls, data: Any) -> ModdedBody:
        data = _require_mapping(data, cls.__name__)
        raw = data.get("Data")
        if raw is None:
            payload = b""
        elif isinstance(raw, str):
            payload = base64.b64decode(raw, validate=True)
        else:
            raise TypeError(f"Data expects base64 text, got {type(raw).__name__}")
        return cls(
            encrypted=bool(data.get("Encrypted", False)),
            encryption_type=data.get("EncryptionType") or "",
            compressed=bool(data.get("Compressed", False)),
            compression_type=data.get("CompressionType") or "",
            utc_date_time=data.get("UTCDateTime") or "",
            data=payload,
        )


@dataclass
class ModdedLetter:
    """A letter whose body was modified, with the indicators of what was done."""

    letter_id: int = 0
    body: ModdedBody | None = None
    letter_metadata: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready mapping of this letter."""
        return {
            "LetterID": self.letter_id,
            "Body": self.body._to_json() if self.body is not None else None,
            "LetterMetadata": self.letter_metadata,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ModdedLetter:
        """Build a letter from its JSON mapping."""
        data = _require_mapping(data, cls.__name__)
        body = data.get("Body")
        return cls(
            letter_id=data.get("LetterID") or 0,
            body=ModdedBody._from_json(body) if body is not None else None,
            letter_metadata=data.get("LetterMetadata") or "",
        )