from src.services.scanner.scan_filter import filter_decode_event, classify_engine_error
from src.services.scanner.session import ScanSessionController

__all__ = ["filter_decode_event", "classify_engine_error", "ScanSessionController"]
