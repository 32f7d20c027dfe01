from __future__ import annotations
from pathlib import Path

import pytest

import rrvideo.video.capture as capture
from fakes import BrowserFactory, fake_ffmpeg, sample_events, write_events


@pytest.fixture
def events_file(tmp_path: Path) -> Path:
    return write_events(tmp_path / "session.json", sample_events())


@pytest.fixture
def browser_factory() -> BrowserFactory:
    return BrowserFactory()


@pytest.fixture(autouse=True)
def no_ffmpeg(monkeypatch):
    monkeypatch.setattr(capture, "run_ffmpeg", fake_ffmpeg)


@pytest.fixture
def temp_root(tmp_path: Path) -> Path:
    root = tmp_path / "tmp-root"
    root.mkdir()
    return root
