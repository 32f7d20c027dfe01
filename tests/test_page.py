from __future__ import annotations
import json
import re
from pathlib import Path

import pytest

from rrvideo.video.config import resolve_config, vcfg
from rrvideo.video.page import build_player_html, embed_json, player_props, set_document_content
from rrvideo.video.viewport import Viewport
from fakes import FakePage


def test_embed_json_cannot_close_the_script_block() -> None:
    events = [{"type": 3, "data": {"text": "</script><script>alert(1)</script>"}}]
    embedded = embed_json(events)
    assert "</" not in embedded
    assert json.loads(embedded) == events


def test_player_props_are_sized_to_the_capture(tmp_path: Path) -> None:
    config = resolve_config(input="a.json", player={"width": 10, "speed": 2}, cwd=tmp_path)
    props = player_props(config, Viewport(512, 384))
    assert (props["width"], props["height"]) == (512, 384)
    assert props["speed"] == 2


def _script_json(html: str, element_id: str):
    match = re.search(rf'<script type="application/json" id="{element_id}">(.*?)</script>', html, re.S)
    assert match is not None
    return json.loads(match.group(1))


def test_player_html_embeds_events_and_bindings(tmp_path: Path) -> None:
    config = resolve_config(
        input="a.json", player={"showController": True}, player_script_url="http://cdn/p.js", cwd=tmp_path
    )
    events = [{"type": 4, "timestamp": 1, "data": {"width": 800, "height": 600, "x": "</script>"}}]
    html = build_player_html(events, Viewport(640, 480), config)

    assert _script_json(html, "rrvideo-events") == events
    props = _script_json(html, "rrvideo-props")
    assert props["showController"] is True
    assert props["width"] == 640
    assert '<script src="http://cdn/p.js"></script>' in html
    assert vcfg.PROGRESS_BINDING in html
    assert vcfg.FINISH_BINDING in html
    assert "window.replayer" not in html


@pytest.mark.asyncio
async def test_set_document_content_writes_the_whole_document() -> None:
    page = FakePage(frames=0, progress=(), finish_calls=0)
    await set_document_content(page, "<p>it's \"quoted\"</p>")
    assert page.evaluated[0].startswith("document.open(); document.write(")
    assert json.dumps("<p>it's \"quoted\"</p>") in page.evaluated[0]
