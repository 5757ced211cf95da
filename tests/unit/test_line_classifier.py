"""
Тесты классификации строк протокола
"""
import pytest

from chatstream.core.config_manager import StreamConfig
from chatstream.services.streaming import LineClassifier, LineError, LineKind


@pytest.fixture
def classifier():
    return LineClassifier()


class TestContentLines:

    def test_content(self, classifier):
        result = classifier.classify('data: Hello')

        assert result.kind == LineKind.CONTENT
        assert result.text == 'Hello'
        assert result.raw == 'data: Hello'
        assert result.is_content

    def test_leading_space_preserved(self, classifier):
        assert classifier.classify('data:  indented').text == ' indented'

    @pytest.mark.parametrize('payload', ['12abc', 'NaN', '1234567890', '1,5', 'Hello 42'])
    def test_non_sentinel_payloads(self, classifier, payload):
        assert classifier.classify(f'data: {payload}').kind == LineKind.CONTENT


class TestSentinels:

    @pytest.mark.parametrize('payload', ['42', '', '   ', '123456789', '3.14', '1e3', '-7', '.5', ' 17 '])
    def test_sentinel_payloads(self, classifier, payload):
        result = classifier.classify(f'data: {payload}')

        assert result.kind == LineKind.SENTINEL
        assert result.is_discarded

    def test_length_limit_is_configurable(self):
        classifier = LineClassifier(StreamConfig(sentinel_max_length=3))

        assert classifier.classify('data: 12').kind == LineKind.SENTINEL
        assert classifier.classify('data: 123').kind == LineKind.CONTENT


class TestCrisisLines:

    def test_inline_crisis(self, classifier):
        result = classifier.classify('event: crisis data: Please call the hotline')

        assert result.kind == LineKind.CRISIS
        assert result.text == 'Please call the hotline'
        assert result.is_crisis

    def test_numeric_crisis_payload_is_not_a_sentinel(self, classifier):
        result = classifier.classify('event: crisis data: 988')

        assert result.kind == LineKind.CRISIS
        assert result.text == '988'

    def test_bare_event_marker(self, classifier):
        result = classifier.classify('event: crisis')

        assert result.kind == LineKind.EVENT_MARKER
        assert not result.is_discarded


class TestNoiseLines:

    @pytest.mark.parametrize('line', ['', ': keep-alive', 'id: 5', 'event: message', 'data:no-space'])
    def test_blank(self, classifier, line):
        result = classifier.classify(line)

        assert result.kind == LineKind.BLANK
        assert result.is_discarded


class TestErrors:

    def test_non_string_line(self, classifier):
        result = classifier.classify(None)

        assert isinstance(result, LineError)
        assert isinstance(result.error, TypeError)
        assert result.message.startswith('TypeError')


def test_custom_markers():
    classifier = LineClassifier(StreamConfig(content_marker='>> ', event_marker='!alert'))

    assert classifier.classify('>> hi').text == 'hi'
    assert classifier.classify('!alert >> help').kind == LineKind.CRISIS
    assert classifier.classify('!alert >> help').text == 'help'
    assert classifier.classify('data: hi').kind == LineKind.BLANK
