from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator

NO_NAME_FALLBACK = "(No name found)"

class SessionPhase(str, Enum):
    IDLE = "Idle"
    SCANNING = "Scanning"

class DecodeEventKind(str, Enum):
    DECODED = "Decoded"
    NOT_FOUND = "NotFound"
    ENGINE_ERROR = "EngineError"

class DecodeEvent(BaseModel):
    """One decode attempt reported by the decoder engine for a single frame."""
    model_config = ConfigDict(frozen=True)

    kind: DecodeEventKind
    text: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def decoded(cls, text: str) -> "DecodeEvent":
        return cls(kind=DecodeEventKind.DECODED, text=text)

    @classmethod
    def not_found(cls) -> "DecodeEvent":
        return cls(kind=DecodeEventKind.NOT_FOUND)

    @classmethod
    def engine_error(cls, detail: str) -> "DecodeEvent":
        return cls(kind=DecodeEventKind.ENGINE_ERROR, detail=detail)

class ProductIdentifier(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str

    @field_validator('value')
    @classmethod
    def _digits_only(cls, v: str) -> str:
        # str.isdigit() also accepts superscripts and other unicode digits
        if not v or not all(c in "0123456789" for c in v):
            raise ValueError(f"Product identifier must be a non-empty digit string, got {v!r}")
        return v

    def __str__(self) -> str:
        return self.value

class ProductRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str
    name: str = NO_NAME_FALLBACK
    image_url: Optional[str] = None
    origin_label: Optional[str] = None

class LookupOutcomeKind(str, Enum):
    FOUND = "Found"
    NOT_FOUND = "NotFound"
    TRANSIENT_ERROR = "TransientError"

class LookupOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: LookupOutcomeKind
    record: Optional[ProductRecord] = None
    detail: Optional[str] = None

    @classmethod
    def found(cls, record: ProductRecord) -> "LookupOutcome":
        return cls(kind=LookupOutcomeKind.FOUND, record=record)

    @classmethod
    def not_found(cls) -> "LookupOutcome":
        return cls(kind=LookupOutcomeKind.NOT_FOUND)

    @classmethod
    def transient_error(cls, detail: str) -> "LookupOutcome":
        return cls(kind=LookupOutcomeKind.TRANSIENT_ERROR, detail=detail)

class CameraConstraint(BaseModel):
    facing_mode: str = "environment"

class ScanOptions(BaseModel):
    scan_rate: int = 15 # Frames per second handed to the decoder
    decode_region_size: int = 350 # Edge of the square decode box in px
