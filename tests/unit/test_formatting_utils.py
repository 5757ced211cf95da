"""
Тесты утилит форматирования сообщений
"""
from datetime import datetime
from types import SimpleNamespace

from chatstream.services.formatter import MessageFormattingUtils
from chatstream.core.sanitizer import MessageSanitizer


class TestNormalizeMessage:
    def test_normalize_whitespace(self):
        assert MessageFormattingUtils.normalize_message('  test  \n\n\n  message  ') == 'test  \n  message'

    def test_empty_input(self):
        assert MessageFormattingUtils.normalize_message('') == ''
        assert MessageFormattingUtils.normalize_message(None) == ''
        assert MessageFormattingUtils.normalize_message(42) == ''


class TestHasIncompleteMarkdown:
    def test_detects_incomplete_code_blocks(self):
        assert MessageFormattingUtils.has_incomplete_markdown('```') is True
        assert MessageFormattingUtils.has_incomplete_markdown('```\n```') is False

    def test_non_string(self):
        assert MessageFormattingUtils.has_incomplete_markdown(None) is False
        assert MessageFormattingUtils.has_incomplete_markdown(['```']) is False


class TestValidateMessage:
    def test_valid_with_datetime(self):
        message = {'sender': 'user', 'text': 'hello', 'timestamp': datetime.now()}
        assert MessageFormattingUtils.validate_message(message) is True

    def test_valid_with_epoch(self):
        message = {'sender': 'assistant', 'text': '', 'timestamp': 1700000000000}
        assert MessageFormattingUtils.validate_message(message) is True

    def test_valid_object(self):
        message = SimpleNamespace(sender='user', text='hi', timestamp=1.5)
        assert MessageFormattingUtils.validate_message(message) is True

    def test_valid_slotted_object(self):
        class SlottedMessage:
            __slots__ = ('sender', 'text', 'timestamp')

            def __init__(self):
                self.sender = 'user'
                self.text = 'hi'
                self.timestamp = 1700000000000

        assert MessageFormattingUtils.validate_message(SlottedMessage()) is True

    def test_rejects_invalid(self):
        assert MessageFormattingUtils.validate_message(None) is False
        assert MessageFormattingUtils.validate_message({}) is False
        assert MessageFormattingUtils.validate_message({'text': 'hello'}) is False
        assert MessageFormattingUtils.validate_message('text') is False

    def test_rejects_bool_and_string_timestamps(self):
        base = {'sender': 'user', 'text': 'hello'}
        assert MessageFormattingUtils.validate_message({**base, 'timestamp': True}) is False
        assert MessageFormattingUtils.validate_message({**base, 'timestamp': '2024-01-01'}) is False


class TestSanitizeMessage:
    def test_removes_script(self):
        sanitized = MessageFormattingUtils.sanitize_message('<script>alert(1)</script>Hello')
        assert '<script>' not in sanitized
        assert 'Hello' in sanitized

    def test_removes_script_case_insensitive(self):
        sanitized = MessageFormattingUtils.sanitize_message('<SCRIPT type="text/javascript">x()</ScRiPt>ok')
        assert sanitized == 'ok'

    def test_removes_iframe_with_content(self):
        sanitized = MessageFormattingUtils.sanitize_message("<iframe src='evil'>inner</IFRAME>safe")
        assert sanitized == 'safe'

    def test_strips_javascript_uri(self):
        sanitized = MessageFormattingUtils.sanitize_message('<a href="JavaScript:alert(1)">x</a>')
        assert 'javascript:' not in sanitized.lower()

    def test_strips_event_handlers(self):
        sanitized = MessageFormattingUtils.sanitize_message('<img src="a.png" onerror = "steal()">')
        assert 'onerror' not in sanitized

    def test_plain_text_untouched(self):
        assert MessageFormattingUtils.sanitize_message('Just a **markdown** message') == 'Just a **markdown** message'

    def test_non_string(self):
        assert MessageFormattingUtils.sanitize_message(None) == ''

    def test_disabled_sanitizer_passes_text_through(self):
        text = '<script>x</script>'
        assert MessageSanitizer.sanitize_text(text, enabled=False) == text


class TestErrorResponses:
    def test_is_error_response(self):
        assert MessageFormattingUtils.is_error_response('Error: Something went wrong') is True
        assert MessageFormattingUtils.is_error_response('Failed to connect') is True
        assert MessageFormattingUtils.is_error_response('Unhandled EXCEPTION') is True
        assert MessageFormattingUtils.is_error_response('Gateway Timeout') is True
        assert MessageFormattingUtils.is_error_response('Hello world') is False
        assert MessageFormattingUtils.is_error_response(None) is False

    def test_extract_error_message(self):
        assert MessageFormattingUtils.extract_error_message('Error: Network timeout') == 'Network timeout'
        assert MessageFormattingUtils.extract_error_message('Failed to connect') == 'Failed to connect'

    def test_extract_uses_first_error_line(self):
        assert MessageFormattingUtils.extract_error_message('Request timeout\nretry later') == 'Request timeout'

    def test_extract_falls_back_to_whole_text(self):
        assert MessageFormattingUtils.extract_error_message('  nothing wrong here  ') == 'nothing wrong here'

    def test_extract_empty_input(self):
        assert MessageFormattingUtils.extract_error_message('') == 'Unknown error occurred'
        assert MessageFormattingUtils.extract_error_message(None) == 'Unknown error occurred'
