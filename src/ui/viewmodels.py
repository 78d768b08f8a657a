from dataclasses import dataclass
from typing import Optional
from src.core.models import ProductRecord, SessionPhase

@dataclass
class PresentationState:
    phase: SessionPhase = SessionPhase.IDLE
    last_error: Optional[str] = None
    last_product: Optional[ProductRecord] = None
    modal_open: bool = False # Product dialog visible

    @property
    def is_scanning(self) -> bool:
        return self.phase == SessionPhase.SCANNING

    @property
    def show_product(self) -> bool:
        return self.modal_open and self.last_product is not None
