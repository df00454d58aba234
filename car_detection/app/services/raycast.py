"""Ground-plane raycaster standing in for an AR session's surface tracking."""
from __future__ import annotations

import logging
import math
from typing import List, Optional, Tuple

import numpy as np

from ..models import Pose, ScreenPoint, TrackableType

LOGGER = logging.getLogger(__name__)

PLANE_QUERIES = {TrackableType.PLANES, TrackableType.ALL}


class PlaneRaycaster:
    """Intersect screen rays of a pitched pinhole camera with a horizontal plane.

    World axes are y-up; the camera sits at ``(0, camera_height, 0)`` facing +z
    and tilted down by ``pitch_deg``. Screen coordinates grow right and down.
    """

    def __init__(
        self,
        screen_size: Tuple[int, int],
        camera_height: float = 1.5,
        pitch_deg: float = 30.0,
        vertical_fov_deg: float = 60.0,
        plane_height: float = 0.0,
        max_distance: Optional[float] = None,
    ) -> None:
        width, height = screen_size
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid screen size: {screen_size}")
        if not 0.0 < vertical_fov_deg < 180.0:
            raise ValueError(f"Vertical field of view must be in (0, 180), got {vertical_fov_deg}")
        self.screen_size = (int(width), int(height))
        self.origin = np.array([0.0, camera_height, 0.0])
        self.plane_height = plane_height
        self.max_distance = max_distance
        self._tan_half_fov = math.tan(math.radians(vertical_fov_deg) / 2.0)

        pitch = math.radians(pitch_deg)
        self._right = np.array([1.0, 0.0, 0.0])
        self._up = np.array([0.0, math.cos(pitch), math.sin(pitch)])
        self._forward = np.array([0.0, -math.sin(pitch), math.cos(pitch)])
        LOGGER.info(
            "Plane raycaster initialized (screen=%sx%s, height=%.2f, pitch=%.1f)",
            width,
            height,
            camera_height,
            pitch_deg,
        )

    def ray_direction(self, point: ScreenPoint) -> np.ndarray:
        width, height = self.screen_size
        ndc_x = 2.0 * point.x / width - 1.0
        ndc_y = 1.0 - 2.0 * point.y / height
        aspect = width / height
        direction = (
            self._right * ndc_x * self._tan_half_fov * aspect
            + self._up * ndc_y * self._tan_half_fov
            + self._forward
        )
        return direction / (np.linalg.norm(direction) + 1e-12)

    def __call__(self, point: ScreenPoint, trackable: TrackableType = TrackableType.PLANES) -> List[Pose]:
        if trackable not in PLANE_QUERIES:
            return []
        direction = self.ray_direction(point)
        if direction[1] >= 0.0:
            return []
        distance = (self.plane_height - self.origin[1]) / direction[1]
        if distance <= 0.0:
            return []
        if self.max_distance is not None and distance > self.max_distance:
            return []
        hit = self.origin + distance * direction
        return [Pose(position=(float(hit[0]), float(hit[1]), float(hit[2])))]
