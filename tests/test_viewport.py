from __future__ import annotations
import copy
import itertools

import pytest

from rrvideo.video.config import vcfg
from rrvideo.video.viewport import Viewport, compute_capture_viewport, compute_content_viewport


def meta(width, height, ts=0):
    return {"type": 4, "timestamp": ts, "data": {"width": width, "height": height}}


def test_empty_session_gets_the_floor() -> None:
    assert compute_content_viewport([]) == Viewport(
        vcfg.MIN_VIEWPORT_WIDTH, vcfg.MIN_VIEWPORT_HEIGHT
    )


def test_max_of_each_dimension_independently() -> None:
    events = [meta(1920, 600), {"type": 2, "data": {}}, meta(1280, 1400)]
    assert compute_content_viewport(events) == Viewport(1920, 1400)


def test_permutation_invariance() -> None:
    events = [meta(1500, 700), meta(1100, 900), meta(1300, 1200), {"type": 3, "data": {"source": 1}}]
    expected = compute_content_viewport(events)
    for order in itertools.permutations(events):
        assert compute_content_viewport(list(order)) == expected


def test_idempotent_and_does_not_mutate() -> None:
    events = [meta(2000, 1000), meta(800, 600)]
    before = copy.deepcopy(events)
    first = compute_content_viewport(events)
    assert compute_content_viewport(events) == first
    assert events == before


def test_non_meta_dimensions_are_ignored() -> None:
    events = [{"type": 3, "data": {"width": 5000, "height": 5000}}]
    assert compute_content_viewport(events) == Viewport(1024, 576)


def test_malformed_meta_dimensions_are_ignored() -> None:
    events = [
        {"type": 4, "data": {"width": "3000", "height": None}},
        {"type": 4},
        {"type": 4, "data": {"width": 1600, "height": True}},
    ]
    assert compute_content_viewport(events) == Viewport(1600, 576)


def test_smaller_meta_keeps_the_floor() -> None:
    assert compute_content_viewport([meta(320, 240)]) == Viewport(1024, 576)


def test_documented_scenario() -> None:
    content = compute_content_viewport([meta(800, 600), meta(1024, 768)])
    assert content == Viewport(1024, 768)
    assert compute_capture_viewport(content, 0.5) == Viewport(512, 384)


@pytest.mark.parametrize("ratio", [1e-9, 0.001, 0.33, 0.8, 1.0])
def test_capture_viewport_is_positive_ints(ratio) -> None:
    capture = compute_capture_viewport(Viewport(1024, 576), ratio)
    assert all(isinstance(side, int) and side >= 1 for side in capture)


def test_capture_rounds_half_up() -> None:
    assert compute_capture_viewport(Viewport(1025, 577), 0.5) == Viewport(513, 289)


@pytest.mark.parametrize("bad", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_dimensions_are_ignored(bad) -> None:
    events = [meta(bad, 600), meta(1280, bad)]
    assert compute_content_viewport(events) == Viewport(1280, vcfg.MIN_VIEWPORT_HEIGHT)
