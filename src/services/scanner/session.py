import asyncio
import time
import logging
from collections import deque
from functools import partial
from typing import Any, Callable, Deque, Dict, List, Optional, Set

from src.core import config_manager
from src.core.models import (
    CameraConstraint, DecodeEvent, DecodeEventKind, LookupOutcome, LookupOutcomeKind,
    ProductIdentifier, ScanOptions, SessionPhase
)
from src.services.scanner.scan_filter import classify_engine_error, filter_decode_event
from src.ui.viewmodels import PresentationState

logger = logging.getLogger(__name__)

MAX_DIAGNOSTICS = 50
INIT_ERROR_PREFIX = "Initialization Error"
LOOKUP_ERROR_PREFIX = "Lookup Error"

StateListener = Callable[[PresentationState], None]

class ScanSessionController:
    """
    Owns the scan session: the decoder handle, the session phase and the
    presentation state. Every state change goes through this class.

    The decoder engine must provide
        await engine.start(camera, options, on_decode, on_error) -> handle
        await handle.stop()
    and the lookup client
        await client.lookup(identifier) -> LookupOutcome
    """

    def __init__(self, engine, lookup_client,
                 state: Optional[PresentationState] = None,
                 camera: Optional[CameraConstraint] = None,
                 options: Optional[ScanOptions] = None,
                 rescan_cooldown: Optional[float] = None):
        self.engine = engine
        self.lookup_client = lookup_client
        self.state = state or PresentationState()
        self.camera = camera or config_manager.get_camera_constraint()
        self.options = options or config_manager.get_scan_options()
        # Seconds during which a just-resolved code is not looked up again
        self.rescan_cooldown = rescan_cooldown if rescan_cooldown is not None else config_manager.get_rescan_cooldown()

        self._phase = SessionPhase.IDLE
        self._handle: Any = None
        # Bumped whenever a handle is started or torn down; callbacks carry the
        # value they were created with so events from an old handle are dropped.
        self._generation = 0
        self._transition_lock = asyncio.Lock()

        self._in_flight: Set[str] = set()
        self._resolved_at: Dict[str, float] = {}
        self._lookup_tasks: Set[asyncio.Task] = set()
        self._listeners: List[StateListener] = []
        self.diagnostics: Deque[str] = deque(maxlen=MAX_DIAGNOSTICS)

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def has_engine(self) -> bool:
        return self._handle is not None

    # --- Listeners ---

    def register_listener(self, callback: StateListener):
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unregister_listener(self, callback: StateListener):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self):
        for listener in list(self._listeners):
            try:
                listener(self.state)
            except Exception as e:
                logger.error(f"State listener failed: {e}")

    def _diagnostic(self, message: str):
        self.diagnostics.append(message)

    def _set_phase(self, phase: SessionPhase):
        self._phase = phase
        self.state.phase = phase

    # --- Session lifecycle ---

    async def start_requested(self) -> bool:
        """Starts a fresh decoder session. Returns False if the camera could not be started."""
        async with self._transition_lock:
            if self._handle is not None:
                logger.info("Session already active, tearing it down before restart")
                await self._terminate_engine()

            self._generation += 1
            generation = self._generation
            self._resolved_at.clear()

            try:
                handle = await self.engine.start(
                    self.camera,
                    self.options,
                    partial(self._on_decode, generation),
                    partial(self._on_engine_error, generation),
                )
            except Exception as e:
                logger.error(f"Initialization Error: {e}")
                self._set_phase(SessionPhase.IDLE)
                self.state.last_error = f"{INIT_ERROR_PREFIX}: {e}"
                self._notify()
                return False

            self._handle = handle
            self._set_phase(SessionPhase.SCANNING)
            self.state.last_error = None
            logger.info("Scan session started")
            self._notify()
            return True

    async def stop_requested(self):
        """Stops the decoder. Safe to call at any time; pending lookups keep running."""
        async with self._transition_lock:
            await self._terminate_engine()
            if self._phase != SessionPhase.IDLE:
                logger.info("Scan session stopped")
            self._set_phase(SessionPhase.IDLE)
            self._notify()

    async def _terminate_engine(self):
        handle = self._handle
        self._handle = None
        self._generation += 1
        if handle is None:
            return

        try:
            await handle.stop()
        except Exception as e:
            logger.error(f"Scanner cleanup error: {e}")
            self._diagnostic(f"Scanner cleanup error: {e}")

    async def reset(self):
        """Stops scanning and forgets the last result and error."""
        await self.stop_requested()
        self.state.last_product = None
        self.state.last_error = None
        self.state.modal_open = False
        self._notify()

    async def shutdown(self):
        await self.stop_requested()
        self._listeners.clear()

    def dismiss_result(self):
        if self.state.modal_open:
            self.state.modal_open = False
            self._notify()

    # --- Decoder events ---

    def _on_decode(self, generation: int, text: str):
        self.decode_event_received(DecodeEvent.decoded(text), generation)

    def _on_engine_error(self, generation: int, message: str):
        self.decode_event_received(classify_engine_error(message), generation)

    def decode_event_received(self, event: DecodeEvent, generation: Optional[int] = None):
        if self._phase != SessionPhase.SCANNING:
            return
        if generation is not None and generation != self._generation:
            return

        if event.kind == DecodeEventKind.ENGINE_ERROR:
            logger.warning(f"Camera Error: {event.detail}")
            self._diagnostic(f"Camera Error: {event.detail}")
            return

        identifier = filter_decode_event(event)
        if identifier is None:
            return

        if identifier.value in self._in_flight or self._cooling_down(identifier.value):
            return

        logger.info(f"Scanned: {identifier.value}")
        self._in_flight.add(identifier.value)
        task = asyncio.get_running_loop().create_task(self._run_lookup(identifier))
        self._lookup_tasks.add(task)
        task.add_done_callback(self._lookup_tasks.discard)

    async def _run_lookup(self, identifier: ProductIdentifier):
        try:
            outcome = await self.lookup_client.lookup(identifier)
        except Exception as e:
            logger.error(f"Fetch Error for {identifier.value}: {e}")
            outcome = LookupOutcome.transient_error(str(e) or type(e).__name__)
        finally:
            self._in_flight.discard(identifier.value)
            self._prune_cooldowns()
            self._resolved_at[identifier.value] = time.monotonic()

        self.lookup_outcome_received(outcome)

    def _prune_cooldowns(self):
        now = time.monotonic()
        expired = [value for value, resolved_at in self._resolved_at.items()
                   if now - resolved_at >= self.rescan_cooldown]
        for value in expired:
            del self._resolved_at[value]

    def _cooling_down(self, value: str) -> bool:
        resolved_at = self._resolved_at.get(value)
        if resolved_at is None:
            return False
        if time.monotonic() - resolved_at < self.rescan_cooldown:
            return True
        del self._resolved_at[value]
        return False

    async def wait_for_lookups(self):
        while self._lookup_tasks:
            await asyncio.gather(*list(self._lookup_tasks))

    # --- Lookup outcomes ---

    def lookup_outcome_received(self, outcome: LookupOutcome):
        """Applies a lookup result. Runs regardless of phase: a stopped camera keeps its last scan."""
        if outcome.kind == LookupOutcomeKind.FOUND:
            self.state.last_product = outcome.record
            self.state.modal_open = True
            self.state.last_error = None
            self._notify()

        elif outcome.kind == LookupOutcomeKind.NOT_FOUND:
            logger.info("Lookup returned no product; ignoring")

        else:
            message = f"{LOOKUP_ERROR_PREFIX}: {outcome.detail or 'unknown error'}"
            self.state.last_error = message
            self._diagnostic(message)
            self._notify()
