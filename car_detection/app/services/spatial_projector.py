"""Map decoded detections onto tracked surfaces through a raycast capability."""
from __future__ import annotations

import logging
from typing import Callable, Collection, Iterable, List, Sequence, Tuple

from ..models import Detection, Placement, Pose, ScreenPoint, TrackableType

LOGGER = logging.getLogger(__name__)

ScreenSize = Tuple[int, int]
RaycastFn = Callable[[ScreenPoint, TrackableType], Sequence[Pose]]

DEFAULT_SPATIAL_CLASSES = ("car", "car-tire")


def to_screen_point(detection: Detection, screen_size: ScreenSize, input_size: int) -> ScreenPoint:
    """Scale the box center from ``[0, input_size)`` tensor space to screen pixels."""

    width, height = screen_size
    cx, cy = detection.bounding_box.center
    return ScreenPoint(x=cx / input_size * width, y=cy / input_size * height)


def project_detections(
    detections: Iterable[Detection],
    class_filter: Collection[str],
    confidence_threshold: float,
    screen_size: ScreenSize,
    input_size: int,
    raycast: RaycastFn,
) -> List[Placement]:
    """Raycast each qualifying detection and pair the first hit with its class.

    A detection qualifies when its label is in ``class_filter`` and its
    confidence is strictly above ``confidence_threshold``. Misses are skipped.
    """

    placements: List[Placement] = []
    for detection in detections:
        if detection.label not in class_filter:
            continue
        if not detection.confidence > confidence_threshold:
            continue
        point = to_screen_point(detection, screen_size, input_size)
        hits = raycast(point, TrackableType.PLANES)
        if not hits:
            LOGGER.debug("No surface hit for %s at (%.1f, %.1f)", detection.label, point.x, point.y)
            continue
        placements.append(
            Placement(
                class_index=detection.class_index,
                label=detection.label,
                confidence=detection.confidence,
                pose=hits[0],
            )
        )
    return placements


class SpatialProjector:
    """Projection settings bound once for the live loop."""

    def __init__(
        self,
        raycast: RaycastFn,
        screen_size: ScreenSize,
        input_size: int = 640,
        accepted_labels: Collection[str] = DEFAULT_SPATIAL_CLASSES,
        confidence_threshold: float = 0.6,
    ) -> None:
        self.raycast = raycast
        self.screen_size = screen_size
        self.input_size = input_size
        self.accepted_labels = frozenset(accepted_labels)
        self.confidence_threshold = confidence_threshold

    def project(self, detections: Iterable[Detection]) -> List[Placement]:
        return project_detections(
            detections,
            self.accepted_labels,
            self.confidence_threshold,
            self.screen_size,
            self.input_size,
            self.raycast,
        )
