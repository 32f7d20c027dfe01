from __future__ import annotations
from pathlib import Path

import pytest

from rrvideo.errors import InvalidInputError
from rrvideo.video.config import TransformConfig, clamp_resolution_ratio, resolve_config, vcfg


def test_input_is_required(tmp_path: Path) -> None:
    with pytest.raises(InvalidInputError):
        resolve_config({}, cwd=tmp_path)
    with pytest.raises(InvalidInputError):
        resolve_config(input="", cwd=tmp_path)


def test_defaults_and_relative_paths(tmp_path: Path) -> None:
    config = resolve_config(input="session.json", cwd=tmp_path)
    assert config.input == tmp_path / "session.json"
    assert config.output == tmp_path / vcfg.DEFAULT_OUTPUT
    assert config.resolution_ratio == vcfg.DEFAULT_RESOLUTION_RATIO
    assert config.headless is True
    assert config.timeout is None
    assert config.player["autoPlay"] is True


def test_none_output_falls_back_to_default(tmp_path: Path) -> None:
    config = resolve_config({"input": "a.json", "output": None}, cwd=tmp_path)
    assert config.output.name == vcfg.DEFAULT_OUTPUT


def test_absolute_paths_are_kept(tmp_path: Path) -> None:
    out = tmp_path / "videos" / "x.mp4"
    config = resolve_config(input=tmp_path / "a.json", output=out, cwd=Path("/elsewhere"))
    assert config.output == out
    assert config.input == tmp_path / "a.json"


@pytest.mark.parametrize("ratio", [1.0001, 2, 50.5, float("inf")])
def test_ratio_above_one_is_clamped(tmp_path: Path, ratio) -> None:
    config = resolve_config(input="a.json", resolution_ratio=ratio, cwd=tmp_path)
    assert config.resolution_ratio == 1.0


@pytest.mark.parametrize("ratio", [0, -0.5, "0.5", True, float("nan")])
def test_invalid_ratio_is_rejected(ratio) -> None:
    with pytest.raises(InvalidInputError):
        clamp_resolution_ratio(ratio)


def test_player_options_merge_over_defaults(tmp_path: Path) -> None:
    config = resolve_config(
        {"input": "a.json", "player": {"speed": 4, "showController": True}}, cwd=tmp_path
    )
    assert config.player["speed"] == 4
    assert config.player["showController"] is True
    assert config.player["skipInactive"] is True
    assert config.player["mouseTail"] == {"strokeStyle": "yellow"}


def test_keyword_overrides_win(tmp_path: Path) -> None:
    config = resolve_config({"input": "a.json", "headless": True}, headless=False, cwd=tmp_path)
    assert config.headless is False


def test_unknown_option_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(InvalidInputError, match="unknown"):
        resolve_config(input="a.json", fps=30, cwd=tmp_path)


@pytest.mark.parametrize("timeout", [0, -1, "10", float("nan"), float("inf")])
def test_bad_timeout_is_rejected(tmp_path: Path, timeout) -> None:
    with pytest.raises(InvalidInputError):
        resolve_config(input="a.json", timeout=timeout, cwd=tmp_path)


def test_effective_ratio_with_upscale(tmp_path: Path) -> None:
    plain = resolve_config(input="a.json", resolution_ratio=0.4, cwd=tmp_path)
    boosted = resolve_config(input="a.json", resolution_ratio=0.4, upscale=True, cwd=tmp_path)
    assert plain.effective_ratio == pytest.approx(0.4)
    assert boosted.effective_ratio == pytest.approx(0.4 * vcfg.MAX_SCALE_VALUE)


def test_config_is_frozen(tmp_path: Path) -> None:
    config = resolve_config(input="a.json", cwd=tmp_path)
    assert isinstance(config, TransformConfig)
    with pytest.raises(AttributeError):
        config.headless = False


def test_player_options_are_read_only(tmp_path: Path) -> None:
    user_player = {"speed": 2, "mouseTail": {"strokeStyle": "blue"}}
    config = resolve_config(input="a.json", player=user_player, cwd=tmp_path)
    with pytest.raises(TypeError):
        config.player["speed"] = 8
    user_player["speed"] = 16
    user_player["mouseTail"]["strokeStyle"] = "green"
    assert config.player["speed"] == 2
    assert config.player["mouseTail"] == {"strokeStyle": "blue"}
    with pytest.raises(TypeError):
        TransformConfig(input=tmp_path / "a.json", output=tmp_path / "b.webm").player["speed"] = 8
