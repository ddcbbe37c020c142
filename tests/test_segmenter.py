"""Tests for segmenter.py -- per-chapter stream-copy cutting."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from audiobook_splitter.errors import ExternalToolError
from audiobook_splitter.models import Chapter
from audiobook_splitter.segmenter import (
    chapter_extension,
    chapter_filename,
    segment,
)


class FakeFFmpeg:
    """Stands in for subprocess.run: records commands, writes outputs."""

    def __init__(self, cover: bool = True, fail_cut: int | None = None) -> None:
        self.cover = cover
        self.fail_cut = fail_cut
        self.calls: list[list[str]] = []

    def __call__(self, cmd, **kwargs):
        self.calls.append(cmd)
        if "0:v" in cmd and not self.cover:
            return self._done(cmd, 1, "Stream map '0:v' matches no streams.")
        if "-ss" in cmd and self.fail_cut == len(self.cuts) - 1:
            return self._done(cmd, 1, "Invalid data found")
        Path(cmd[-1]).write_bytes(b"data")
        return self._done(cmd)

    @staticmethod
    def _done(cmd, returncode=0, stderr=""):
        return subprocess.CompletedProcess(
            args=cmd, returncode=returncode, stdout="", stderr=stderr,
        )

    @property
    def cuts(self) -> list[list[str]]:
        return [c for c in self.calls if "-ss" in c]

    @property
    def attaches(self) -> list[list[str]]:
        return [c for c in self.calls if "attached_pic" in c]


def _arg(cmd: list[str], flag: str, occurrence: int = 0) -> str:
    positions = [i for i, arg in enumerate(cmd) if arg == flag]
    return cmd[positions[occurrence] + 1]


def _metadata(cmd: list[str]) -> list[str]:
    return [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-metadata"]


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "src" / "Dune.m4b"
    path.parent.mkdir()
    path.write_bytes(b"book")
    return path


class TestChapterExtension:
    def test_book_container_becomes_plain_audio(self):
        assert chapter_extension(Path("a.m4b")) == ".m4a"
        assert chapter_extension(Path("a.M4B")) == ".m4a"

    def test_other_extensions_kept(self):
        assert chapter_extension(Path("a.mp3")) == ".mp3"
        assert chapter_extension(Path("a.m4a")) == ".m4a"


class TestChapterFilename:
    def test_padding_follows_chapter_count(self):
        assert chapter_filename("Dune", 1, 3, Path("d.mp3")) == "Dune - 1.mp3"
        assert chapter_filename("Dune", 1, 12, Path("d.mp3")) == "Dune - 01.mp3"
        assert chapter_filename("Dune", 7, 150, Path("d.mp3")) == "Dune - 007.mp3"

    def test_title_is_sanitized(self):
        assert chapter_filename("Dune: Messiah", 2, 2, Path("d.m4b")) == "Dune Messiah - 2.m4a"

    def test_unusable_title(self):
        assert chapter_filename("???", 1, 1, Path("d.mp3")) == "Chapter - 1.mp3"


class TestSegment:
    def test_start_and_duration_per_chapter(self, source, tmp_path):
        fake = FakeFFmpeg(cover=False)
        chapters = [Chapter(0, 1000, "A"), Chapter(1000, 2500, "B")]

        with patch("subprocess.run", fake):
            produced = segment(source, "Dune", chapters, tmp_path / "out")

        assert len(produced) == 2
        first, second = fake.cuts
        assert _arg(first, "-ss") == "0:0:0"
        assert _arg(first, "-t") == "0:0:1"
        assert _arg(second, "-ss") == "0:0:1"
        assert _arg(second, "-t") == "0:0:1.5"
        assert "-to" not in first and "-to" not in second

    def test_stream_copy_with_title_and_album(self, source, tmp_path):
        fake = FakeFFmpeg(cover=False)
        with patch("subprocess.run", fake):
            segment(source, "Dune", [Chapter(0, 1000, "Prologue")], tmp_path / "out")

        (cut,) = fake.cuts
        assert _arg(cut, "-c") == "copy"
        assert _arg(cut, "-i") == str(source)
        assert _metadata(cut) == ["title=Prologue", "album=Dune"]

    def test_book_container_outputs_plain_audio_names(self, source, tmp_path):
        fake = FakeFFmpeg(cover=False)
        chapters = [Chapter(i * 1000, (i + 1) * 1000, f"C{i}") for i in range(12)]
        with patch("subprocess.run", fake):
            produced = segment(source, "Dune", chapters, tmp_path / "out")

        assert produced[0] == tmp_path / "out" / "Dune - 01.m4a"
        assert produced[-1] == tmp_path / "out" / "Dune - 12.m4a"
        assert all(p.suffix == ".m4a" for p in produced)
        assert all(p.exists() for p in produced)

    def test_creates_output_dir(self, source, tmp_path):
        out = tmp_path / "a" / "b"
        with patch("subprocess.run", FakeFFmpeg(cover=False)):
            segment(source, "Dune", [Chapter(0, 10, "x")], out)
        assert out.is_dir()

    def test_cover_attached_to_every_chapter_then_removed(self, source, tmp_path):
        fake = FakeFFmpeg(cover=True)
        chapters = [Chapter(0, 1000, "A"), Chapter(1000, 2000, "B"), Chapter(2000, 3000, "C")]

        with patch("subprocess.run", fake):
            produced = segment(source, "Dune", chapters, tmp_path / "out")

        extracts = [c for c in fake.calls if "0:v" in c]
        assert len(extracts) == 1
        cover_path = Path(extracts[0][-1])
        assert len(fake.attaches) == 3
        assert [a[-1] for a in fake.attaches] == [
            str(p.with_name(f"{p.stem}.add_cover_art{p.suffix}")) for p in produced
        ]
        assert all(_arg(a, "-i") in map(str, produced) for a in fake.attaches)
        assert all(_arg(a, "-i", 1) == str(cover_path) for a in fake.attaches)
        assert not cover_path.exists()
        assert list(source.parent.iterdir()) == [source]

    def test_no_cover_skips_attach(self, source, tmp_path):
        fake = FakeFFmpeg(cover=False)
        with patch("subprocess.run", fake):
            segment(source, "Dune", [Chapter(0, 1000, "A")], tmp_path / "out")
        assert fake.attaches == []

    def test_failure_stops_remaining_chapters(self, source, tmp_path):
        fake = FakeFFmpeg(cover=True, fail_cut=1)
        chapters = [Chapter(0, 1000, "A"), Chapter(1000, 2000, "B"), Chapter(2000, 3000, "C")]

        with patch("subprocess.run", fake):
            with pytest.raises(ExternalToolError):
                segment(source, "Dune", chapters, tmp_path / "out")

        assert len(fake.cuts) == 2
        assert (tmp_path / "out" / "Dune - 1.m4a").exists()
        assert not (tmp_path / "out" / "Dune - 3.m4a").exists()
        assert list(source.parent.iterdir()) == [source]

    def test_existing_cover_file_beside_source_survives(self, source, tmp_path):
        mine = source.parent / ".cover.png"
        mine.write_bytes(b"my artwork")

        with patch("subprocess.run", FakeFFmpeg(cover=True)):
            segment(source, "Dune", [Chapter(0, 1000, "A")], tmp_path / "out")

        assert mine.read_bytes() == b"my artwork"
