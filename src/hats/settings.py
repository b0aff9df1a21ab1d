"""Live generation settings read by the external agent calls."""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping, Tuple

from .models import ImageParams, VideoParams

IMAGE_API_BASE = "http://127.0.0.1:8001"  # POST /generate
VIDEO_API_BASE = "http://127.0.0.1:8002"  # POST /generate_video

# field -> (min, max), inclusive
RANGES: Dict[str, Tuple[float, float]] = {
    "image_num_steps": (4, 100),
    "image_guidance": (1.0, 10.0),
    "video_num_frames": (8, 200),
    "video_num_steps": (4, 200),
    "video_fps": (8, 60),
}


@dataclass
class Settings:
    image_api_base: str = IMAGE_API_BASE
    video_api_base: str = VIDEO_API_BASE
    image_num_steps: int = 8
    image_guidance: float = 2.5
    video_num_frames: int = 25
    video_num_steps: int = 15
    video_fps: int = 24

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "Settings":
        """Build settings from the ``settings`` section of a config dict."""
        section = (cfg or {}).get("settings", {}) or {}
        return cls().updated(**section)

    def updated(self, **changes: Any) -> "Settings":
        """Return a validated copy with ``changes`` applied.

        Raises
        ------
        ValueError
            On an unknown field or a value outside its allowed range. No
            change is applied in that case.
        """
        known = {f.name: f for f in fields(self)}
        coerced: Dict[str, Any] = {}
        for name, value in changes.items():
            if name not in known:
                raise ValueError(f"Unknown setting: {name}")
            if value is None:
                continue
            if name.endswith("_api_base"):
                value = str(value).strip()
                if not value:
                    raise ValueError(f"{name} cannot be empty")
            else:
                kind = float if name == "image_guidance" else int
                if kind is int and isinstance(value, float) and not value.is_integer():
                    raise ValueError(f"{name} must be a whole number, got {value}")
                try:
                    value = kind(value)
                except (TypeError, ValueError) as e:
                    raise ValueError(f"{name} must be {kind.__name__}: {e}") from e
                lo, hi = RANGES[name]
                if not lo <= value <= hi:
                    raise ValueError(f"{name}={value} outside [{lo}, {hi}]")
            coerced[name] = value
        return replace(self, **coerced)

    # Snapshots are taken once per agent call and never change during it.
    def image_params(self) -> ImageParams:
        return ImageParams(num_steps=self.image_num_steps, guidance=self.image_guidance)

    def video_params(self) -> VideoParams:
        return VideoParams(
            num_frames=self.video_num_frames,
            num_inference_steps=self.video_num_steps,
            fps=self.video_fps,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
