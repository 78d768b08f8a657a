import logging
from typing import Optional

from src.core.models import DecodeEvent, DecodeEventKind, ProductIdentifier

logger = logging.getLogger(__name__)

# Messages the decoder emits for frames that simply contain no readable barcode
BENIGN_ERROR_MARKERS = (
    "NotFoundException",
    "No MultiFormat Readers were able to detect the code",
    "No barcode or QR code detected",
)

def classify_engine_error(message: Optional[str]) -> DecodeEvent:
    """Turns a raw decoder failure message into NotFound or EngineError."""
    text = message or ""
    if not text.strip() or any(marker in text for marker in BENIGN_ERROR_MARKERS):
        return DecodeEvent.not_found()
    return DecodeEvent.engine_error(text)

def is_product_identifier(text: Optional[str]) -> bool:
    return bool(text) and all(c in "0123456789" for c in text)

def filter_decode_event(event: DecodeEvent) -> Optional[ProductIdentifier]:
    """
    Accepts only decoded payloads that are fully numeric product codes.
    NotFound and EngineError events are always rejected; reporting engine
    errors is the caller's job.
    """
    if event.kind != DecodeEventKind.DECODED:
        return None

    if not is_product_identifier(event.text):
        logger.debug(f"Rejected decoded text {event.text!r}: not a numeric product code")
        return None

    return ProductIdentifier(value=event.text)
