"""
Tests for the streamed line protocol parser.

Covers chunk-boundary independence, malformed-line tolerance, line
classification precedence, lenient/strict narration policy, and error
propagation from the transport.
"""

import pytest

from leadprospector.models.lead import LeadType, LogEvent, ResultEvent
from leadprospector.services.ai_client import RateLimitedError, TransportError
from leadprospector.services.stream_parser import StreamParser, parse_stream

SAMPLE = '{"email":"a@x.com","type":"general"}\nLOG: done\n'


def _run(fragments, lenient=True):
    parser = StreamParser(lenient=lenient)
    events = []
    for fragment in fragments:
        events.extend(parser.feed(fragment))
    events.extend(parser.finish())
    return events


def _summary(events):
    return [
        ("result", e.data.email) if isinstance(e, ResultEvent) else ("log", e.message)
        for e in events
    ]


async def _agen(items):
    for item in items:
        if isinstance(item, BaseException):
            raise item
        yield item


# ═══════════════════════════════════════════════
# Chunking
# ═══════════════════════════════════════════════

class TestChunking:
    def test_single_fragment(self):
        assert _summary(_run([SAMPLE])) == [("result", "a@x.com"), ("log", "done")]

    def test_split_mid_line(self):
        fragments = [SAMPLE[:14], SAMPLE[14:]]
        assert _summary(_run(fragments)) == [("result", "a@x.com"), ("log", "done")]

    def test_every_two_way_split_gives_same_events(self):
        expected = _summary(_run([SAMPLE]))
        for cut in range(len(SAMPLE) + 1):
            assert _summary(_run([SAMPLE[:cut], SAMPLE[cut:]])) == expected, cut

    def test_one_character_at_a_time(self):
        assert _summary(_run(list(SAMPLE))) == [("result", "a@x.com"), ("log", "done")]

    def test_incomplete_last_line_parsed_on_finish(self):
        parser = StreamParser()
        assert parser.feed('LOG: start\n{"email":"b@x.com"}') == [LogEvent(message="start")]
        events = parser.finish()
        assert _summary(events) == [("result", "b@x.com")]

    def test_crlf_line_endings(self):
        events = _run(['{"email":"a@x.com"}\r\nLOG: ok\r\n'])
        assert _summary(events) == [("result", "a@x.com"), ("log", "ok")]

    def test_feed_after_finish_raises(self):
        parser = StreamParser()
        parser.finish()
        with pytest.raises(RuntimeError):
            parser.feed("LOG: again\n")


# ═══════════════════════════════════════════════
# Classification
# ═══════════════════════════════════════════════

class TestClassification:
    def test_malformed_line_between_valid_results_is_dropped(self):
        text = '{"email":"a@x.com"}\n{"email":\n{"email":"b@x.com"}\n'
        events = _run([text])
        assert [e.type for e in events] == ["result", "result"]

    def test_json_without_email_is_dropped(self):
        assert _run(['{"name":"No Email"}\n']) == []

    def test_empty_email_is_dropped(self):
        assert _run(['{"email":"   "}\n']) == []

    def test_type_is_lowercased(self):
        events = _run(['{"email":"a@x.com","type":"RECRUITMENT"}\n'])
        assert events[0].data.type is LeadType.RECRUITMENT

    def test_unknown_or_missing_type_defaults(self):
        events = _run(['{"email":"a@x.com","type":"cold"}\n{"email":"b@x.com"}\n'])
        assert [e.data.type for e in events] == [LeadType.UNKNOWN, LeadType.UNKNOWN]

    def test_source_url_alias(self):
        events = _run(['{"email":"a@x.com","sourceUrl":"https://acme.io/team"}\n'])
        assert events[0].data.source_url == "https://acme.io/team"

    @pytest.mark.parametrize("line,message", [
        ("LOG: Searching LinkedIn", "Searching LinkedIn"),
        ("[LOG] Found careers page", "Found careers page"),
        ("status: scanning", "scanning"),
        ("   LOG:   padded   ", "padded"),
    ])
    def test_log_markers_are_stripped(self, line, message):
        assert _run([line + "\n"]) == [LogEvent(message=message)]

    def test_log_marker_takes_precedence_over_json(self):
        events = _run(['LOG: {"email":"a@x.com"}\n'])
        assert events == [LogEvent(message='{"email":"a@x.com"}')]

    def test_blank_lines_ignored(self):
        assert _run(["\n\n   \n"]) == []


# ═══════════════════════════════════════════════
# Narration policy
# ═══════════════════════════════════════════════

class TestNarrationPolicy:
    PROSE = "Checking the Acme careers page for contacts"

    def test_lenient_surfaces_prose(self):
        assert _run([self.PROSE + "\n"], lenient=True) == [LogEvent(message=self.PROSE)]

    def test_strict_drops_prose(self):
        assert _run([self.PROSE + "\n"], lenient=False) == []

    @pytest.mark.parametrize("line", ["```json", "```", "ok", "-----------------", '{"email":"a@x.com"},'])
    def test_noise_never_surfaces(self, line):
        assert _run([line + "\n"], lenient=True) == []


# ═══════════════════════════════════════════════
# parse_stream
# ═══════════════════════════════════════════════

class TestParseStream:
    @pytest.mark.asyncio
    async def test_yields_events_lazily_in_order(self):
        events = [e async for e in parse_stream(_agen([SAMPLE[:10], SAMPLE[10:]]))]
        assert _summary(events) == [("result", "a@x.com"), ("log", "done")]

    @pytest.mark.asyncio
    async def test_transport_error_reraised_after_diagnostic_log(self):
        error = TransportError("connection reset")
        seen = []
        with pytest.raises(TransportError) as excinfo:
            async for event in parse_stream(_agen(['{"email":"a@x.com"}\n', error])):
                seen.append(event)

        assert excinfo.value is error
        assert _summary(seen[:1]) == [("result", "a@x.com")]
        assert isinstance(seen[-1], LogEvent)
        assert "connection reset" in seen[-1].message

    @pytest.mark.asyncio
    async def test_rate_limit_error_keeps_its_class(self):
        with pytest.raises(RateLimitedError):
            async for _ in parse_stream(_agen([RateLimitedError("quota", retry_after=5)])):
                pass
