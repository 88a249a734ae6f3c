"""
Configuration system for the body pose detection pipeline.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Literal, Optional, Tuple

import yaml

from bodypose_app.types import DeviceOrientation


@dataclass(frozen=True)
class PipelineConfig:
    """
    Immutable sizes the pipeline maps between.

    Built once the frame source reports its dimensions; both sizes are in
    pixels.
    """

    view_width: int
    view_height: int
    frame_width: int
    frame_height: int

    @property
    def view_size(self) -> Tuple[int, int]:
        return (self.view_width, self.view_height)

    @property
    def frame_size(self) -> Tuple[int, int]:
        return (self.frame_width, self.frame_height)

    @property
    def is_degenerate(self) -> bool:
        """True when any dimension is non-positive."""
        return min(self.view_width, self.view_height, self.frame_width, self.frame_height) <= 0

    def validate(self) -> List[str]:
        issues = []
        if self.view_width <= 0 or self.view_height <= 0:
            issues.append(f"View size must be positive, got {self.view_width}x{self.view_height}")
        if self.frame_width <= 0 or self.frame_height <= 0:
            issues.append(f"Frame size must be positive, got {self.frame_width}x{self.frame_height}")
        return issues


@dataclass
class CaptureConfig:
    """Frame source configuration."""

    device_index: int = 0
    video_path: Optional[Path] = None

    # Requested capture format; the device may pick another one
    width: int = 640
    height: int = 480
    fps: int = 30

    device_orientation: str = DeviceOrientation.PORTRAIT.value

    # Restart video files instead of ending the stream
    loop_video: bool = False


@dataclass
class EngineConfig:
    """Pose inference engine configuration."""

    backend: Literal["mediapipe"] = "mediapipe"
    model_complexity: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5


@dataclass
class DetectionConfig:
    """Extraction and emission policy."""

    confidence_threshold: float = 0.5
    halt_on_inference_error: bool = True


@dataclass
class ViewConfig:
    """Destination view size in pixels (portrait)."""

    width: int = 480
    height: int = 640


@dataclass
class AppConfig:
    """Main application configuration."""

    capture: CaptureConfig = field(default_factory=CaptureConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    view: ViewConfig = field(default_factory=ViewConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        config = cls()

        if "capture" in data:
            config.capture = CaptureConfig(**data["capture"])
            if config.capture.video_path is not None:
                config.capture.video_path = Path(config.capture.video_path)
        if "engine" in data:
            config.engine = EngineConfig(**data["engine"])
        if "detection" in data:
            config.detection = DetectionConfig(**data["detection"])
        if "view" in data:
            config.view = ViewConfig(**data["view"])

        return config

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file."""

        def to_dict(obj):
            if hasattr(obj, "__dataclass_fields__"):
                return {k: to_dict(v) for k, v in obj.__dict__.items()}
            elif isinstance(obj, Path):
                return str(obj)
            return obj

        data = to_dict(self)

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def validate(self) -> List[str]:
        """Validate configuration and return list of warnings/errors."""
        issues = []

        if not 0.0 <= self.detection.confidence_threshold < 1.0:
            issues.append(
                f"Confidence threshold must be in [0, 1), got {self.detection.confidence_threshold}"
            )

        if self.view.width <= 0 or self.view.height <= 0:
            issues.append(f"View size must be positive, got {self.view.width}x{self.view.height}")

        if self.capture.width <= 0 or self.capture.height <= 0:
            issues.append(
                f"Capture size must be positive, got {self.capture.width}x{self.capture.height}"
            )

        valid_orientations = {o.value for o in DeviceOrientation}
        if self.capture.device_orientation not in valid_orientations:
            issues.append(f"Unknown device orientation: {self.capture.device_orientation}")

        if self.capture.video_path is not None and not Path(self.capture.video_path).exists():
            issues.append(f"Video file does not exist: {self.capture.video_path}")

        if self.engine.model_complexity not in (0, 1, 2):
            issues.append(f"Model complexity must be 0, 1 or 2, got {self.engine.model_complexity}")

        return issues
