from nicegui import ui, context
import logging

from src.services.off_api import off_service
from src.services.scanner.decoder import BrowserDecoderEngine, JS_DECODER_CODE
from src.services.scanner.session import INIT_ERROR_PREFIX, ScanSessionController
from src.ui.viewmodels import PresentationState

logger = logging.getLogger(__name__)

SCANNER_ELEMENT_ID = "scanner"

class ScanPage:
    def __init__(self):
        self.engine = BrowserDecoderEngine(element_id=SCANNER_ELEMENT_ID)
        self.controller = ScanSessionController(self.engine, off_service)

        self.root = None
        self.start_btn = None
        self.stop_btn = None
        self.scanner_box = None
        self.status_label = None
        self.dialog = None
        self.is_active = False
        self.is_starting = False

    @property
    def state(self) -> PresentationState:
        return self.controller.state

    async def start_scanner(self):
        self.is_starting = True
        # The decoder needs its target element in the DOM before it starts
        self.scanner_box.visible = True
        self.start_btn.visible = False
        try:
            started = await self.controller.start_requested()
        finally:
            self.is_starting = False
            self.refresh()

        if not started:
            ui.notify(self.state.last_error or "Failed to start camera", type='negative')

    async def stop_scanner(self):
        await self.controller.stop_requested()

    def dismiss_result(self):
        self.controller.dismiss_result()

    async def reset_session(self):
        await self.controller.reset()
        ui.notify("Scanner reset", type='info')

    def on_state_change(self, state: PresentationState):
        """Listener for controller updates; may fire from lookup tasks after the click handler returned."""
        if not self.is_active or self.root is None:
            return
        with self.root:
            self.refresh()

    def refresh(self):
        scanning = self.state.is_scanning
        if self.start_btn:
            self.start_btn.visible = not scanning and not self.is_starting
        if self.stop_btn:
            self.stop_btn.visible = scanning
        if self.scanner_box:
            self.scanner_box.visible = scanning or self.is_starting
        if self.status_label:
            self.status_label.text = f"Status: {self.state.phase.value}"

        self.render_error.refresh()
        self.render_diagnostics.refresh()

        if self.dialog:
            if self.state.show_product:
                self.render_product.refresh()
                self.dialog.open()
            else:
                self.dialog.close()

    @ui.refreshable
    def render_error(self):
        error = self.state.last_error
        if not error:
            return
        with ui.column().classes('w-full items-center mt-4 text-red-500'):
            ui.label(error)
            if error.startswith(INIT_ERROR_PREFIX):
                ui.label("Please refresh and allow camera access.")

    @ui.refreshable
    def render_product(self):
        product = self.state.last_product
        if not product:
            return

        ui.label('Product Scanned').classes('text-xl font-bold')
        if product.image_url:
            ui.image(product.image_url).classes('w-24 my-2').props('fit=contain')

        with ui.row().classes('gap-1'):
            ui.label('Name:').classes('font-bold')
            ui.label(product.name)

        with ui.row().classes('gap-1'):
            ui.label('Country:').classes('font-bold')
            ui.label(product.origin_label or 'Unknown')

        ui.label(f'Barcode: {product.identifier}').classes('text-xs text-gray-500')
        ui.button('Close', on_click=self.dismiss_result).classes('mt-4').props('color=primary')

    @ui.refreshable
    def render_diagnostics(self):
        entries = list(self.controller.diagnostics)
        if not entries:
            ui.label('No diagnostics').classes('text-xs text-gray-400')
            return
        for entry in reversed(entries):
            ui.label(entry).classes('text-xs font-mono text-gray-500')

def scan_page():
    page = ScanPage()
    client = context.client

    ui.add_head_html(JS_DECODER_CODE)

    # Per-frame decoder results, routed to whichever handle is current
    ui.on('barcode_decoded', page.engine.handle_decoded_event)
    ui.on('barcode_error', page.engine.handle_error_event)

    page.controller.register_listener(page.on_state_change)
    page.is_active = True

    async def cleanup():
        page.is_active = False
        # Lookups still resolve into the controller; only the camera is released
        await page.controller.shutdown()

    client.on_disconnect(cleanup)

    page.root = ui.column().classes('w-full items-center p-5 gap-4')
    with page.root:
        ui.label('Open Food Facts Scanner').classes('text-3xl font-bold')
        page.status_label = ui.label(f"Status: {page.state.phase.value}").classes('text-sm text-gray-400')

        page.start_btn = ui.button('Start Scanner', on_click=page.start_scanner) \
            .classes('px-8 py-4 text-lg').props('color=positive icon=videocam')

        page.scanner_box = ui.column().classes('w-full items-center')
        with page.scanner_box:
            ui.html(f'<div id="{SCANNER_ELEMENT_ID}" style="width: 100%; max-width: 600px; margin: 0 auto;"></div>',
                    sanitize=False).classes('w-full')
        page.scanner_box.visible = False

        page.stop_btn = ui.button('Stop Scanner', on_click=page.stop_scanner) \
            .classes('px-8 py-4 text-lg').props('color=negative icon=videocam_off')
        page.stop_btn.visible = False

        page.render_error()

        with ui.expansion('Diagnostics', icon='bug_report').classes('w-full max-w-xl'):
            page.render_diagnostics()
            ui.button('Reset', on_click=page.reset_session).props('flat dense icon=restart_alt')

        page.dialog = ui.dialog()
        page.dialog.on('hide', page.dismiss_result)
        with page.dialog, ui.card().classes('items-center w-96 p-5'):
            page.render_product()
