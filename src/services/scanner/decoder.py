import json
import uuid
import logging
from typing import Callable, Dict, Optional, Tuple
from nicegui import context, events

from src.core.models import CameraConstraint, ScanOptions
from src.services.scanner.scan_filter import BENIGN_ERROR_MARKERS

logger = logging.getLogger(__name__)

HTML5_QRCODE_URL = "https://unpkg.com/html5-qrcode@2.3.8/html5-qrcode.min.js"

JS_DECODER_CODE = """
<script src="%s"></script>
<script>
window.barcodeScanners = {};
window.pendingBarcodeScanners = {};
window.barcode_js_loaded = true;

// No-match frames are dropped here instead of crossing the websocket at the scan rate
const BENIGN_DECODE_MESSAGES = %s;

function errorText(err) {
    return String((err && err.message) || err || 'Unknown error');
}

function isBenignDecodeMessage(message) {
    return !message.trim() || BENIGN_DECODE_MESSAGES.some((marker) => message.includes(marker));
}

async function startBarcodeScanner(handleId, elementId, facingMode, fps, boxSize) {
    if (typeof Html5Qrcode === 'undefined') {
        return { ok: false, error: 'html5-qrcode library not loaded' };
    }
    let scanner;
    // Visible to stopBarcodeScanner while the permission prompt is still open
    const pending = { cancelled: false };
    window.pendingBarcodeScanners[handleId] = pending;
    try {
        scanner = new Html5Qrcode(elementId);
        await scanner.start(
            { facingMode: facingMode },
            { fps: fps, qrbox: { width: boxSize, height: boxSize } },
            (decodedText) => emitEvent('barcode_decoded', { handle: handleId, text: decodedText }),
            (errorMessage) => {
                const message = String(errorMessage || '');
                if (!isBenignDecodeMessage(message)) {
                    emitEvent('barcode_error', { handle: handleId, message: message });
                }
            }
        );
    } catch (err) {
        delete window.pendingBarcodeScanners[handleId];
        console.error("Initialization Error:", err);
        return { ok: false, error: errorText(err) };
    }
    delete window.pendingBarcodeScanners[handleId];

    if (pending.cancelled) {
        try {
            await scanner.stop();
            scanner.clear();
        } catch (err) {
            console.error("Scanner cleanup error:", err);
        }
        return { ok: false, error: 'Scanner start cancelled' };
    }

    window.barcodeScanners[handleId] = scanner;
    return { ok: true };
}

async function stopBarcodeScanner(handleId) {
    const pending = window.pendingBarcodeScanners[handleId];
    if (pending) {
        pending.cancelled = true;
        return { ok: true };
    }
    const scanner = window.barcodeScanners[handleId];
    if (!scanner) return { ok: true };
    delete window.barcodeScanners[handleId];
    try {
        await scanner.stop();
        scanner.clear();
        return { ok: true };
    } catch (err) {
        console.error("Scanner cleanup error:", err);
        return { ok: false, error: errorText(err) };
    }
}
</script>
""" % (HTML5_QRCODE_URL, json.dumps(list(BENIGN_ERROR_MARKERS)))

DecodeCallback = Callable[[str], None]
ErrorCallback = Callable[[str], None]

class DecoderInitError(Exception):
    """Camera or decoder could not be started (permission denied, no device, library missing)."""

class DecoderStopError(Exception):
    pass

class BrowserDecoderHandle:
    """A running html5-qrcode instance in the page, addressed by its handle id."""

    def __init__(self, engine: "BrowserDecoderEngine", handle_id: str):
        self.engine = engine
        self.handle_id = handle_id
        self.stopped = False

    async def stop(self):
        if self.stopped:
            return
        self.stopped = True
        # Drop callbacks first so frames still in flight are ignored
        self.engine.release(self.handle_id)

        result = await self.engine.client.run_javascript(
            f'stopBarcodeScanner({json.dumps(self.handle_id)})', timeout=self.engine.js_timeout
        )
        if result and not result.get('ok', True):
            raise DecoderStopError(result.get('error', 'Unknown error'))

class BrowserDecoderEngine:
    """
    Drives html5-qrcode in the connected browser.
    Per-frame results come back as 'barcode_decoded' / 'barcode_error' events,
    which the page forwards to handle_decoded_event / handle_error_event.
    """

    def __init__(self, element_id: str = "scanner", client=None, js_timeout: float = 20.0):
        self.element_id = element_id
        self.client = client or context.client
        self.js_timeout = js_timeout
        self._callbacks: Dict[str, Tuple[DecodeCallback, ErrorCallback]] = {}

    async def start(self, camera: CameraConstraint, options: ScanOptions,
                    on_decode: DecodeCallback, on_error: ErrorCallback) -> BrowserDecoderHandle:
        handle_id = uuid.uuid4().hex
        self._callbacks[handle_id] = (on_decode, on_error)

        code = (
            f'startBarcodeScanner({json.dumps(handle_id)}, {json.dumps(self.element_id)}, '
            f'{json.dumps(camera.facing_mode)}, {int(options.scan_rate)}, {int(options.decode_region_size)})'
        )
        try:
            result = await self.client.run_javascript(code, timeout=self.js_timeout)
        except Exception as e:
            self.release(handle_id)
            # The browser may still finish starting after we gave up waiting
            await self._cancel_start(handle_id)
            raise DecoderInitError(str(e) or type(e).__name__) from e

        if not result or not result.get('ok'):
            self.release(handle_id)
            raise DecoderInitError(result.get('error', 'Unknown error') if result else 'No response from browser')

        logger.info(f"Decoder started (handle {handle_id[:8]}, {options.scan_rate} fps)")
        return BrowserDecoderHandle(self, handle_id)

    async def _cancel_start(self, handle_id: str):
        try:
            await self.client.run_javascript(
                f'stopBarcodeScanner({json.dumps(handle_id)})', timeout=self.js_timeout
            )
        except Exception as e:
            logger.warning(f"Could not cancel decoder start (handle {handle_id[:8]}): {e}")

    def release(self, handle_id: str):
        self._callbacks.pop(handle_id, None)

    def _lookup_callbacks(self, args) -> Optional[Tuple[DecodeCallback, ErrorCallback]]:
        if not isinstance(args, dict):
            return None
        return self._callbacks.get(args.get('handle'))

    def handle_decoded_event(self, e: events.GenericEventArguments):
        callbacks = self._lookup_callbacks(e.args)
        if callbacks:
            callbacks[0](e.args.get('text') or "")

    def handle_error_event(self, e: events.GenericEventArguments):
        callbacks = self._lookup_callbacks(e.args)
        if callbacks:
            callbacks[1](e.args.get('message') or "")
