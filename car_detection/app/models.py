"""Shared data models for car detection and spatial placement."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Tuple, Union

import numpy as np

Vector3 = Tuple[float, float, float]
Quaternion = Tuple[float, float, float, float]

BOX_SIZE = 6  # x, y, w, h, confidence, class index


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box stored as top-left corner plus extents."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_center(cls, cx: float, cy: float, width: float, height: float) -> "BoundingBox":
        return cls(x=cx - width / 2.0, y=cy - height / 2.0, width=width, height=height)

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.x2, self.y2)

    def __str__(self) -> str:
        return f"({self.x:.2f}, {self.y:.2f}, {self.width:.2f}, {self.height:.2f})"


@dataclass(frozen=True)
class Detection:
    """A single decoded candidate object."""

    label: str
    confidence: float
    bounding_box: BoundingBox
    class_index: int


@dataclass(eq=False)
class RawTensor:
    """Flat detection output of the inference step, read as fixed-stride records.

    The buffer belongs to whoever ran inference; ``release`` drops it once the
    decode cycle is over.
    """

    values: np.ndarray
    box_size: int = BOX_SIZE
    released: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        if self.box_size <= 0:
            raise ValueError(f"box_size must be positive, got {self.box_size}")
        values = np.asarray(self.values)
        if not np.issubdtype(values.dtype, np.floating):
            values = values.astype(np.float64)
        # floating buffers keep the model output precision
        self.values = values.reshape(-1)

    @classmethod
    def from_output(cls, output: Union[np.ndarray, Iterable[float]], box_size: int = BOX_SIZE) -> "RawTensor":
        """Wrap a model output of any shape, flattened in C order."""

        return cls(values=np.asarray(output), box_size=box_size)

    @property
    def num_detections(self) -> int:
        return len(self.values) // self.box_size

    def records(self) -> np.ndarray:
        """Return a ``(num_detections, box_size)`` view, trailing partial record dropped."""

        if self.released:
            raise RuntimeError("Tensor buffer has already been released")
        count = self.num_detections
        return self.values[: count * self.box_size].reshape(count, self.box_size)

    def release(self) -> None:
        self.values = np.empty(0, dtype=np.float64)
        self.released = True

    def __len__(self) -> int:
        return len(self.values)


class TrackableType(str, Enum):
    """Surface kinds a raycast may be tested against."""

    PLANES = "planes"
    FEATURE_POINTS = "feature_points"
    ALL = "all"


@dataclass(frozen=True)
class ScreenPoint:
    x: float
    y: float


@dataclass(frozen=True)
class Pose:
    """World-space position and orientation (quaternion x, y, z, w)."""

    position: Vector3
    rotation: Quaternion = (0.0, 0.0, 0.0, 1.0)


@dataclass(frozen=True)
class Placement:
    """A detection anchored to a tracked surface."""

    class_index: int
    label: str
    confidence: float
    pose: Pose
