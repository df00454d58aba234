from __future__ import annotations

import math

import pytest

from car_detection.app.models import ScreenPoint, TrackableType
from car_detection.app.services.raycast import PlaneRaycaster


def test_center_ray_hits_plane_at_pitch_distance() -> None:
    raycaster = PlaneRaycaster((1000, 1000), camera_height=2.0, pitch_deg=45.0, vertical_fov_deg=60.0)

    hits = raycaster(ScreenPoint(500, 500), TrackableType.PLANES)

    assert len(hits) == 1
    x, y, z = hits[0].position
    assert x == pytest.approx(0.0, abs=1e-9)
    assert y == pytest.approx(0.0, abs=1e-9)
    assert z == pytest.approx(2.0)
    assert hits[0].rotation == (0.0, 0.0, 0.0, 1.0)


def test_ray_above_horizon_misses() -> None:
    raycaster = PlaneRaycaster((1000, 1000), camera_height=1.5, pitch_deg=10.0, vertical_fov_deg=60.0)

    assert raycaster(ScreenPoint(500, 0), TrackableType.PLANES) == []


def test_lower_screen_points_land_closer() -> None:
    raycaster = PlaneRaycaster((1920, 1080), camera_height=1.5, pitch_deg=30.0)

    near = raycaster(ScreenPoint(960, 1000))[0].position
    far = raycaster(ScreenPoint(960, 600))[0].position

    assert near[2] < far[2]


def test_right_side_of_screen_lands_right_of_camera() -> None:
    raycaster = PlaneRaycaster((1920, 1080), camera_height=1.5, pitch_deg=30.0)

    x, _, _ = raycaster(ScreenPoint(1800, 800))[0].position

    assert x > 0


def test_feature_point_queries_never_hit() -> None:
    raycaster = PlaneRaycaster((640, 480))

    assert raycaster(ScreenPoint(320, 400), TrackableType.FEATURE_POINTS) == []
    assert raycaster(ScreenPoint(320, 400), TrackableType.ALL)


def test_max_distance_limits_hits() -> None:
    raycaster = PlaneRaycaster((1000, 1000), camera_height=1.0, pitch_deg=5.0, max_distance=3.0)

    assert raycaster(ScreenPoint(500, 500)) == []


def test_invalid_screen_size_rejected() -> None:
    with pytest.raises(ValueError):
        PlaneRaycaster((0, 480))


def test_ray_direction_is_unit_length() -> None:
    raycaster = PlaneRaycaster((1280, 720))

    direction = raycaster.ray_direction(ScreenPoint(100, 50))

    assert math.isclose(float((direction ** 2).sum()), 1.0, rel_tol=1e-9)
