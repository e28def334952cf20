"""
Tests for the subtitle extractor module.
"""

import pytest
from unittest.mock import patch, MagicMock, PropertyMock

from video_analyzer.core.subtitles import (
    DEMO_SUBTITLES,
    SubtitleExtractor,
    clean_caption_text,
    demo_subtitles,
    parse_caption_xml,
    select_caption_track,
)
from video_analyzer.utils.error_handling import NoCaptionsError

SECONDS_XML = """<?xml version="1.0" encoding="utf-8" ?>
<transcript>
  <text start="5.2" dur="3.1">second &amp;amp; line</text>
  <text start="0.5" dur="4.0">first
line</text>
  <text start="9" dur="2">   </text>
</transcript>"""

MILLIS_XML = """<?xml version="1.0" encoding="utf-8" ?>
<timedtext format="3">
  <body>
    <p t="1000" d="2500">hello &#39;world&#39;</p>
    <p t="4000" d="1000"><s>split</s><s> words</s></p>
  </body>
</timedtext>"""


def _track(code):
    track = MagicMock()
    track.code = code
    return track


def test_clean_caption_text():
    assert clean_caption_text("a &amp; b\n  c") == "a & b c"


def test_parse_seconds_format():
    lines = parse_caption_xml(SECONDS_XML)
    assert len(lines) == 2
    assert lines[0].start == 5.2
    assert lines[0].end == pytest.approx(8.3)
    assert lines[1].text == "first line"


def test_parse_milliseconds_format():
    lines = parse_caption_xml(MILLIS_XML)
    assert [line.text for line in lines] == ["hello 'world'", "split words"]
    assert lines[0].start == 1.0
    assert lines[0].end == 3.5


def test_parse_invalid_xml():
    assert parse_caption_xml("<transcript><text") == []


def test_select_track_prefers_primary():
    tracks = [_track("de"), _track("zh-CN"), _track("a.en")]
    assert select_caption_track(tracks, ["en"], ["zh-CN"]).code == "a.en"


def test_select_track_secondary_then_first():
    tracks = [_track("de"), _track("zh-Hans")]
    assert select_caption_track(tracks, ["en"], ["zh-Hans"]).code == "zh-Hans"
    assert select_caption_track(tracks, ["en"], ["ja"]).code == "de"
    assert select_caption_track([], ["en"], []) is None


def test_extract_sorts_lines(test_video_id):
    track = _track("en")
    track.xml_captions = SECONDS_XML
    mock_yt = MagicMock()
    mock_yt.captions = [track]

    with patch("video_analyzer.core.subtitles.YouTube", return_value=mock_yt):
        lines = SubtitleExtractor(["en"], []).extract(test_video_id)

    assert [line.start for line in lines] == [0.5, 5.2]


def test_extract_no_tracks(test_video_id):
    mock_yt = MagicMock()
    mock_yt.captions = []

    with patch("video_analyzer.core.subtitles.YouTube", return_value=mock_yt):
        with pytest.raises(NoCaptionsError):
            SubtitleExtractor(["en"], []).extract(test_video_id)


def test_extract_fetch_failure(test_video_id):
    track = _track("en")
    type(track).xml_captions = PropertyMock(side_effect=Exception("HTTP 429"))
    mock_yt = MagicMock()
    mock_yt.captions = [track]

    with patch("video_analyzer.core.subtitles.YouTube", return_value=mock_yt):
        with pytest.raises(NoCaptionsError) as excinfo:
            SubtitleExtractor(["en"], []).extract(test_video_id)

    assert "HTTP 429" in str(excinfo.value)


def test_extract_listing_failure(test_video_id):
    with patch("video_analyzer.core.subtitles.YouTube", side_effect=Exception("network down")):
        with pytest.raises(NoCaptionsError):
            SubtitleExtractor(["en"], []).extract(test_video_id)


def test_demo_subtitles_are_copies():
    lines = demo_subtitles()
    assert len(lines) == 5
    lines[0].text = "changed"
    assert DEMO_SUBTITLES[0].text != "changed"
