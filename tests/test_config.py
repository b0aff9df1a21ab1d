from __future__ import annotations

from pathlib import Path

import pytest

from chat_server.config import load_config
from hats.engine import Orchestrator
from hats.settings import Settings


def test_missing_file_falls_back_to_defaults(tmp_path: Path, clean_env):
    cfg = load_config(str(tmp_path / "nope.yaml"))
    assert cfg["orchestrator"]["pacing_delay"] == 0.35
    assert cfg["server"]["cors_origins"] == ["*"]


def test_yaml_is_merged_over_defaults(tmp_path: Path, clean_env):
    path = tmp_path / "cfg.yaml"
    path.write_text("settings:\n  image_num_steps: 30\nagents:\n  timeout: 5\n", encoding="utf-8")

    cfg = load_config(str(path))

    assert cfg["settings"]["image_num_steps"] == 30
    assert cfg["agents"]["timeout"] == 5
    assert cfg["orchestrator"]["pacing_delay"] == 0.35


def test_env_var_selects_config_and_overrides(tmp_path: Path, clean_env, monkeypatch: pytest.MonkeyPatch):
    path = tmp_path / "cfg.yaml"
    path.write_text("orchestrator:\n  pacing_delay: 1\n", encoding="utf-8")
    monkeypatch.setenv("HATS_CONFIG", str(path))
    monkeypatch.setenv("HATS__ORCHESTRATOR__PACING_DELAY", "0.5")
    monkeypatch.setenv("HATS__SETTINGS__IMAGE_API_BASE", "http://10.0.0.2:8001")
    monkeypatch.setenv("HATS__SERVER__DEBUG", "true")

    cfg = load_config()

    assert cfg["orchestrator"]["pacing_delay"] == 0.5
    assert cfg["settings"]["image_api_base"] == "http://10.0.0.2:8001"
    assert cfg["server"]["debug"] is True


def test_invalid_yaml_raises(tmp_path: Path, clean_env):
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(RuntimeError):
        load_config(str(path))


def test_default_yaml_builds_an_orchestrator(project_root: Path, clean_env):
    cfg = load_config(str(project_root / "config" / "default.yaml"))
    orch = Orchestrator.from_config(cfg)
    assert orch.settings == Settings()
    assert orch.pacing_delay == 0.35


def test_settings_validation():
    s = Settings()
    assert s.updated(video_fps="30").video_fps == 30
    with pytest.raises(ValueError):
        s.updated(video_fps=61)
    with pytest.raises(ValueError):
        s.updated(unknown=1)
    with pytest.raises(ValueError):
        s.updated(image_api_base="  ")
    # Failed updates leave the original untouched.
    assert s.video_fps == 24


def test_settings_rejects_fractional_int_values():
    s = Settings()
    assert s.updated(video_fps=30.0).video_fps == 30
    with pytest.raises(ValueError):
        s.updated(video_fps=30.9)
    with pytest.raises(ValueError):
        s.updated(image_num_steps="8.5")
    assert s.updated(image_guidance=3.7).image_guidance == 3.7


def test_settings_snapshots():
    s = Settings(image_num_steps=9, image_guidance=3.0, video_num_frames=10, video_num_steps=5, video_fps=9)
    assert s.image_params().num_steps == 9
    assert s.image_params().guidance == 3.0
    v = s.video_params()
    assert (v.num_frames, v.num_inference_steps, v.fps) == (10, 5, 9)
