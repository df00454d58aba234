"""Entry point for car detection on a test image or a live camera feed."""
from __future__ import annotations

import argparse
import logging
import signal
import sys
import time
from pathlib import Path
from typing import Optional

from .config.settings import AppSettings, load_settings
from .services.class_labels import ClassLabelTable
from .services.inference import ModelLoadError, initialize, shutdown
from .services.pipeline import DetectionPipeline
from .services.raycast import PlaneRaycaster
from .services.scheduler import IntervalScheduler
from .services.spatial_projector import SpatialProjector
from .services.tensor_decoder import TensorDecoder
from .utils.video import iter_frames, load_image, managed_capture

LOGGER = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Car and car-tire detection with surface placement")
    parser.add_argument("--image", type=str, default=None, help="Run once on a static test image")
    parser.add_argument("--source", type=str, default="0", help="Video source path or device index for live mode")
    parser.add_argument("--model", type=str, default=None, help="Path to ONNX weights file")
    parser.add_argument("--labels", type=str, default=None, help="YAML class label table")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold for decoding")
    parser.add_argument("--spatial-conf", type=float, default=None, help="Confidence threshold for placement")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between live detection cycles")
    parser.add_argument("--nms", action="store_true", help="Enable non-max suppression")
    parser.add_argument("--clamp-confidence", action="store_true", help="Clip confidences to [0, 1]")
    parser.add_argument("--clamp-boxes", action="store_true", help="Clip boxes to the model input frame")
    parser.add_argument("--max-cycles", type=int, default=None, help="Stop live mode after N detection cycles")
    parser.add_argument("--log-format", choices=["text", "json"], default=None, help="Logging format")
    return parser


def setup_logging(settings: AppSettings) -> None:
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if settings.log_format == "json":
        formatter = logging.Formatter('{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}')
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    logging.basicConfig(level=log_level, handlers=[handler])


def resolve_settings(args: argparse.Namespace) -> AppSettings:
    overrides = {}
    if args.model:
        overrides["model_path"] = Path(args.model)
    if args.labels:
        overrides["class_labels_path"] = Path(args.labels)
    if args.conf is not None:
        overrides["confidence_threshold"] = args.conf
    if args.spatial_conf is not None:
        overrides["spatial_confidence_threshold"] = args.spatial_conf
    if args.interval is not None:
        overrides["detection_interval"] = args.interval
    if args.nms:
        overrides["enable_non_max_suppression"] = True
    if args.clamp_confidence:
        overrides["clamp_confidence"] = True
    if args.clamp_boxes:
        overrides["clamp_boxes"] = True
    if args.log_format:
        overrides["log_format"] = args.log_format

    return load_settings(**overrides)


def build_decoder(settings: AppSettings) -> TensorDecoder:
    labels = ClassLabelTable.from_yaml(settings.class_labels_path) if settings.class_labels_path else ClassLabelTable()
    return TensorDecoder(
        labels,
        settings.confidence_threshold,
        enable_nms=settings.enable_non_max_suppression,
        iou_threshold=settings.iou_threshold,
        clamp_confidence=settings.clamp_confidence,
        clamp_boxes=settings.clamp_boxes,
        input_size=settings.input_size,
    )


def build_projector(settings: AppSettings) -> SpatialProjector:
    raycaster = PlaneRaycaster(
        settings.screen_size,
        camera_height=settings.camera_height,
        pitch_deg=settings.camera_pitch_deg,
        vertical_fov_deg=settings.camera_fov_deg,
        max_distance=settings.raycast_max_distance,
    )
    return SpatialProjector(
        raycaster,
        settings.screen_size,
        input_size=settings.input_size,
        accepted_labels=settings.spatial_classes,
        confidence_threshold=settings.spatial_confidence_threshold,
    )


def run_static(pipeline: DetectionPipeline, image_path: Path) -> int:
    frame = load_image(image_path)
    if frame is None:
        LOGGER.error("No test image available at %s; skipping detection", image_path)
        return 1
    detections = pipeline.run_once(frame)
    LOGGER.info("Static run finished with %d detections", len(detections))
    return 0


def run_live(pipeline: DetectionPipeline, source: str | int, max_cycles: Optional[int] = None) -> int:
    """Feed frames to the pipeline, timing cycles by stream time when the source reports FPS."""

    cycles = 0
    with managed_capture(source) as capture:
        last_wall = time.perf_counter()
        last_stream_ms = 0.0
        for frame in iter_frames(capture):
            now = time.perf_counter()
            if frame.timestamp_ms > 0:
                elapsed = max(0.0, (frame.timestamp_ms - last_stream_ms) / 1000.0)
                last_stream_ms = frame.timestamp_ms
            else:
                elapsed = now - last_wall
            last_wall = now

            result = pipeline.step(lambda data=frame.data: data, elapsed)
            if result is None:
                continue
            cycles += 1
            LOGGER.info(
                "Cycle %d | frame=%d | detections=%d | placements=%d",
                cycles,
                frame.index,
                len(result.detections),
                len(result.placements),
            )
            if max_cycles is not None and cycles >= max_cycles:
                break
    return cycles


def run_detection(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    setup_logging(settings)

    try:
        session = initialize(settings.model_path, settings.execution_providers)
    except ModelLoadError as exc:
        LOGGER.error("Detector unavailable: %s", exc)
        return 1

    try:
        decoder = build_decoder(settings)
        if args.image:
            pipeline = DetectionPipeline(session, decoder, input_size=settings.input_size)
            return run_static(pipeline, Path(args.image).expanduser())

        pipeline = DetectionPipeline(
            session,
            decoder,
            projector=build_projector(settings),
            scheduler=IntervalScheduler(settings.detection_interval),
            input_size=settings.input_size,
        )
        source = args.source
        try:
            video_source: str | int = int(source)
        except ValueError:
            video_source = source
        run_live(pipeline, video_source, max_cycles=args.max_cycles)
        return 0
    finally:
        shutdown(session)


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    def handle_interrupt(signum: int, frame: Optional[object]) -> None:  # pragma: no cover - signal handling
        LOGGER.warning("Received interrupt signal (%d), shutting down", signum)
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_interrupt)
    sys.exit(run_detection(args))


if __name__ == "__main__":  # pragma: no cover
    main()
