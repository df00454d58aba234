from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import List

import numpy as np
import pytest

from car_detection.app import detect
from car_detection.app.models import RawTensor
from car_detection.app.services.inference import ModelLoadError, OnnxInferenceSession
from car_detection.app.services.tensor_decoder import TensorDecoder


class FakeOrtSession:
    def __init__(self) -> None:
        self.runs = 0

    def get_inputs(self):
        return [SimpleNamespace(name="images", shape=[1, 3, 640, 640])]

    def run(self, output_names, feeds):
        self.runs += 1
        return [np.array([[320, 320, 64, 64, 0.9, 0]], dtype=np.float32)]


@pytest.fixture()
def fake_ort() -> FakeOrtSession:
    return FakeOrtSession()


@pytest.fixture()
def fake_session(monkeypatch: pytest.MonkeyPatch, fake_ort: FakeOrtSession) -> OnnxInferenceSession:
    session = OnnxInferenceSession(fake_ort, model_path=Path("fake.onnx"))
    monkeypatch.setattr(detect, "initialize", lambda model_path, providers: session)
    return session


def test_static_image_run(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, fake_session, caplog) -> None:
    caplog.set_level("INFO")
    image_path = tmp_path / "test.jpg"
    image_path.write_text("stub")
    monkeypatch.setattr(detect, "load_image", lambda path: np.zeros((480, 640, 3), dtype=np.uint8))

    args = detect.build_arg_parser().parse_args(["--image", str(image_path), "--conf", "0.5"])
    exit_code = detect.run_detection(args)

    assert exit_code == 0
    assert fake_session.closed
    assert "Detected: car | confidence: 0.90" in caplog.text


def test_static_run_without_image(tmp_path: Path, fake_session, caplog) -> None:
    args = detect.build_arg_parser().parse_args(["--image", str(tmp_path / "missing.jpg")])

    assert detect.run_detection(args) == 1
    assert fake_session.closed
    assert "No test image available" in caplog.text


def test_model_load_failure_exits_before_detection(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_initialize(model_path, providers):
        raise ModelLoadError("ONNX model not found")

    monkeypatch.setattr(detect, "initialize", failing_initialize)
    args = detect.build_arg_parser().parse_args(["--image", "anything.jpg"])

    assert detect.run_detection(args) == 1


def test_live_mode_runs_requested_cycles(monkeypatch: pytest.MonkeyPatch, fake_session, fake_ort) -> None:
    frames = [
        SimpleNamespace(index=i, data=np.zeros((640, 640, 3), dtype=np.uint8), timestamp_ms=i * 500.0)
        for i in range(1, 11)
    ]
    opened: List[object] = []

    class DummyCapture:
        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

    def fake_managed_capture(source):
        opened.append(source)
        return DummyCapture()

    monkeypatch.setattr(detect, "managed_capture", fake_managed_capture)
    monkeypatch.setattr(detect, "iter_frames", lambda capture: iter(frames))

    args = detect.build_arg_parser().parse_args(["--source", "0", "--interval", "1.0", "--max-cycles", "3"])
    exit_code = detect.run_detection(args)

    assert exit_code == 0
    assert opened == [0]
    # 500ms stream steps reach the 1s interval on every second frame
    assert fake_ort.runs == 3
    assert fake_session.closed


def test_resolve_settings_maps_flags() -> None:
    args = detect.build_arg_parser().parse_args(
        ["--model", "m.onnx", "--spatial-conf", "0.7", "--nms", "--clamp-boxes", "--interval", "0.5"]
    )

    settings = detect.resolve_settings(args)

    assert settings.model_path == Path("m.onnx")
    assert settings.spatial_confidence_threshold == pytest.approx(0.7)
    assert settings.enable_non_max_suppression is True
    assert settings.clamp_boxes is True
    assert settings.clamp_confidence is False
    assert settings.detection_interval == pytest.approx(0.5)


def test_build_projector_uses_settings() -> None:
    settings = detect.load_settings(screen_width=1280, screen_height=720, spatial_classes=["car"])

    projector = detect.build_projector(settings)

    assert projector.screen_size == (1280, 720)
    assert projector.accepted_labels == frozenset({"car"})


def test_build_projector_applies_raycast_range() -> None:
    settings = detect.load_settings(camera_height=1.0, camera_pitch_deg=5.0, raycast_max_distance=3.0)

    projector = detect.build_projector(settings)

    assert projector.raycast.max_distance == pytest.approx(3.0)
    # the centre ray meets the ground ~11.5m out, past the configured range
    car = TensorDecoder().decode(RawTensor.from_output([320, 320, 64, 64, 0.9, 0]))
    assert projector.project(car) == []
