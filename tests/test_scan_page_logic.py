import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from src.core.models import LookupOutcome, ProductRecord, SessionPhase
from src.services.scanner.decoder import DecoderInitError

from src.ui import scan

class TestScanPageProjection(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.patchers = [
            patch('src.ui.scan.BrowserDecoderEngine', MagicMock()),
            patch('src.ui.scan.ScanPage.render_error', MagicMock()),
            patch('src.ui.scan.ScanPage.render_product', MagicMock()),
            patch('src.ui.scan.ScanPage.render_diagnostics', MagicMock()),
        ]
        for p in self.patchers:
            p.start()

        self.page = scan.ScanPage()
        self.page.start_btn = MagicMock()
        self.page.stop_btn = MagicMock()
        self.page.scanner_box = MagicMock()
        self.page.status_label = MagicMock()
        self.page.dialog = MagicMock()
        self.page.root = MagicMock()
        self.page.is_active = True

    def tearDown(self):
        for p in self.patchers:
            p.stop()

    def test_idle_projection(self):
        self.page.refresh()

        self.assertTrue(self.page.start_btn.visible)
        self.assertFalse(self.page.stop_btn.visible)
        self.assertFalse(self.page.scanner_box.visible)
        self.assertEqual(self.page.status_label.text, "Status: Idle")
        self.page.dialog.close.assert_called()

    def test_scanning_projection(self):
        self.page.controller._set_phase(SessionPhase.SCANNING)

        self.page.refresh()

        self.assertFalse(self.page.start_btn.visible)
        self.assertTrue(self.page.stop_btn.visible)
        self.assertTrue(self.page.scanner_box.visible)
        self.assertEqual(self.page.status_label.text, "Status: Scanning")

    def test_found_outcome_opens_dialog(self):
        self.page.controller.register_listener(self.page.on_state_change)

        self.page.controller.lookup_outcome_received(
            LookupOutcome.found(ProductRecord(identifier="111", name="Cocoa"))
        )

        self.page.dialog.open.assert_called_once()
        self.page.render_product.refresh.assert_called()

    def test_listener_ignored_after_disconnect(self):
        self.page.is_active = False
        self.page.on_state_change(self.page.state)
        self.page.dialog.open.assert_not_called()
        self.page.dialog.close.assert_not_called()

    @patch('src.ui.scan.ui.notify')
    async def test_start_failure_notifies(self, mock_notify):
        self.page.controller.engine.start = AsyncMock(side_effect=DecoderInitError("Permission denied"))

        await self.page.start_scanner()

        mock_notify.assert_called_once_with("Initialization Error: Permission denied", type='negative')
        self.assertTrue(self.page.start_btn.visible)
        self.assertFalse(self.page.scanner_box.visible)

if __name__ == '__main__':
    unittest.main()
