"""Configuration utilities for car detection."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application configuration sourced from environment variables or defaults.

    Confidence thresholds are intentionally left unbounded: values outside
    [0, 1] make the filter always-pass or always-fail.
    """

    model_config = SettingsConfigDict(env_prefix="CARDET_", case_sensitive=False, protected_namespaces=())

    model_path: Path = Field(default=Path("models/car_detector.onnx"), description="ONNX weights path")
    execution_providers: List[str] = Field(default_factory=lambda: ["CPUExecutionProvider"])
    input_size: int = Field(default=640, gt=0, description="Square input dimension the model expects.")
    confidence_threshold: float = Field(default=0.4, description="Threshold for the decode/logging path.")
    spatial_confidence_threshold: float = Field(default=0.6, description="Threshold for surface placement.")
    detection_interval: float = Field(default=1.0, gt=0.0, description="Seconds between live detection cycles.")
    spatial_classes: List[str] = Field(default_factory=lambda: ["car", "car-tire"])
    class_labels_path: Optional[Path] = Field(default=None, description="Optional YAML class label table.")
    enable_non_max_suppression: bool = Field(default=False)
    iou_threshold: float = Field(default=0.45, ge=0.0, le=1.0)
    clamp_confidence: bool = Field(default=False)
    clamp_boxes: bool = Field(default=False)
    screen_width: int = Field(default=1920, gt=0)
    screen_height: int = Field(default=1080, gt=0)
    camera_height: float = Field(default=1.5, gt=0.0)
    camera_pitch_deg: float = Field(default=30.0)
    camera_fov_deg: float = Field(default=60.0, gt=0.0, lt=180.0)
    raycast_max_distance: Optional[float] = Field(default=None, gt=0.0, description="Ignore surface hits beyond this range.")
    log_format: str = Field(default="text")
    log_level: str = Field(default="INFO")

    @field_validator("model_path", mode="before")
    @classmethod
    def _expand_model_path(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            return cls.model_fields["model_path"].default
        return Path(value).expanduser()

    @field_validator("class_labels_path", mode="before")
    @classmethod
    def _expand_labels_path(cls, value: str | Path | None) -> Path | None:
        if value is None or value == "":
            return None
        return Path(value).expanduser()

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in {"text", "json"}:
            raise ValueError(f"Unsupported log format: {value}")
        return value

    @property
    def screen_size(self) -> tuple[int, int]:
        return (self.screen_width, self.screen_height)


def load_settings(**overrides: object) -> AppSettings:
    """Return application settings, applying optional overrides."""

    return AppSettings(**overrides)
