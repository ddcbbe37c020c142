"""Tests for chapters.py -- marker adoption and whole-file fallback."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from audiobook_splitter.chapters import resolve_chapters
from audiobook_splitter.errors import ProbeError
from audiobook_splitter.models import Chapter


def _fake_ffprobe(chapters: list[dict], title: str = "The Book", duration: str = "7.25"):
    """Answer -show_chapters and -show_format like ffprobe would."""
    calls: list[tuple] = []

    def fake(*args):
        calls.append(args)
        if "-show_chapters" in args:
            return json.dumps({"chapters": chapters})
        return json.dumps({
            "format": {
                "duration": duration,
                "tags": {"title": title, "album": title, "artist": "Someone"},
            }
        })

    fake.calls = calls
    return fake


def _marker(start, end, title, time_base="1/1000"):
    return {"time_base": time_base, "start": start, "end": end, "tags": {"title": title}}


class TestResolveChapters:
    def test_uses_embedded_markers_in_order(self):
        fake = _fake_ffprobe([
            _marker(0, 1000, "One"),
            _marker(1000, 2000, "Two"),
            _marker(2000, 3000, "Three"),
        ])
        with patch("audiobook_splitter.ffprobe.ffprobe", fake):
            chapters = resolve_chapters(Path("book.m4b"))

        assert [c.title for c in chapters] == ["One", "Two", "Three"]
        starts = [c.start_ms for c in chapters]
        assert starts == sorted(starts)
        # Format is never probed when markers exist: no fallback chapter
        assert not any("-show_format" in call for call in fake.calls)

    def test_no_markers_falls_back_to_whole_file(self):
        fake = _fake_ffprobe([], title="Standalone", duration="7.25")
        with patch("audiobook_splitter.ffprobe.ffprobe", fake):
            chapters = resolve_chapters(Path("book.mp3"))
        assert chapters == [Chapter(start_ms=0, end_ms=7250, title="Standalone")]

    def test_only_foreign_time_base_falls_back(self):
        fake = _fake_ffprobe(
            [_marker(0, 44100, "A", "1/44100"), _marker(44100, 88200, "B", "1/44100")],
            title="Whole",
            duration="2",
        )
        with patch("audiobook_splitter.ffprobe.ffprobe", fake):
            chapters = resolve_chapters(Path("book.m4b"))
        assert chapters == [Chapter(0, 2000, "Whole")]

    def test_mixed_time_bases_keep_only_milliseconds(self):
        fake = _fake_ffprobe([
            _marker(0, 44100, "Foreign", "1/44100"),
            _marker(1000, 2000, "Kept"),
        ])
        with patch("audiobook_splitter.ffprobe.ffprobe", fake):
            chapters = resolve_chapters(Path("book.m4b"))
        assert chapters == [Chapter(1000, 2000, "Kept")]

    @pytest.mark.parametrize("duration", ["0", "0.0004"])
    def test_zero_length_without_markers_raises(self, duration):
        fake = _fake_ffprobe([], duration=duration)
        with patch("audiobook_splitter.ffprobe.ffprobe", fake):
            with pytest.raises(ProbeError, match="zero duration"):
                resolve_chapters(Path("empty.mp3"))
