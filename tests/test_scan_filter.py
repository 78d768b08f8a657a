import unittest

from src.core.models import DecodeEvent, DecodeEventKind, ProductIdentifier
from src.services.scanner.scan_filter import classify_engine_error, filter_decode_event

class TestFilterDecodeEvent(unittest.TestCase):
    def test_numeric_code_accepted(self):
        identifier = filter_decode_event(DecodeEvent.decoded("0123456"))
        self.assertEqual(identifier, ProductIdentifier(value="0123456"))

    def test_ean13_accepted(self):
        identifier = filter_decode_event(DecodeEvent.decoded("3017620422003"))
        self.assertEqual(identifier.value, "3017620422003")

    def test_alphanumeric_rejected(self):
        self.assertIsNone(filter_decode_event(DecodeEvent.decoded("ABC123")))

    def test_empty_rejected(self):
        self.assertIsNone(filter_decode_event(DecodeEvent.decoded("")))

    def test_url_payload_rejected(self):
        # QR codes on packaging often carry a URL instead of a product code
        self.assertIsNone(filter_decode_event(DecodeEvent.decoded("https://example.com/p/123")))

    def test_whitespace_and_signs_rejected(self):
        for text in [" 123", "123 ", "-123", "12.5", "1e5"]:
            with self.subTest(text=text):
                self.assertIsNone(filter_decode_event(DecodeEvent.decoded(text)))

    def test_unicode_digits_rejected(self):
        # Arabic-Indic digits and superscripts pass str.isdigit() but are not product codes
        self.assertIsNone(filter_decode_event(DecodeEvent.decoded("٠١٢٣")))
        self.assertIsNone(filter_decode_event(DecodeEvent.decoded("12²")))

    def test_not_found_rejected(self):
        self.assertIsNone(filter_decode_event(DecodeEvent.not_found()))

    def test_engine_error_rejected(self):
        self.assertIsNone(filter_decode_event(DecodeEvent.engine_error("camera lost")))

class TestProductIdentifier(unittest.TestCase):
    def test_invalid_values_raise(self):
        for value in ["", "12a", "abc"]:
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    ProductIdentifier(value=value)

class TestClassifyEngineError(unittest.TestCase):
    def test_not_found_exception_is_benign(self):
        event = classify_engine_error(
            "QR code parse error, error = NotFoundException: No MultiFormat Readers were able to detect the code."
        )
        self.assertEqual(event.kind, DecodeEventKind.NOT_FOUND)

    def test_no_barcode_detected_is_benign(self):
        event = classify_engine_error("No barcode or QR code detected.")
        self.assertEqual(event.kind, DecodeEventKind.NOT_FOUND)

    def test_empty_message_is_benign(self):
        self.assertEqual(classify_engine_error("").kind, DecodeEventKind.NOT_FOUND)
        self.assertEqual(classify_engine_error(None).kind, DecodeEventKind.NOT_FOUND)

    def test_other_failures_are_engine_errors(self):
        event = classify_engine_error("ChecksumException: bad checksum")
        self.assertEqual(event.kind, DecodeEventKind.ENGINE_ERROR)
        self.assertEqual(event.detail, "ChecksumException: bad checksum")

if __name__ == '__main__':
    unittest.main()
