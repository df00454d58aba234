"""Decode-and-project cycle used by both the static image and live camera modes."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

import numpy as np

from ..models import Detection, Placement
from ..utils.video import prepare_input
from .inference import OnnxInferenceSession
from .scheduler import IntervalScheduler
from .spatial_projector import SpatialProjector
from .tensor_decoder import TensorDecoder

LOGGER = logging.getLogger(__name__)

FrameSource = Callable[[], Optional[np.ndarray]]


@dataclass
class PipelineResult:
    detections: List[Detection] = field(default_factory=list)
    placements: List[Placement] = field(default_factory=list)


def tick(
    session: OnnxInferenceSession,
    frame: Optional[np.ndarray],
    decoder: TensorDecoder,
    input_size: int = 640,
) -> List[Detection]:
    """Run one inference and decode it; a missing frame skips the cycle."""

    if frame is None:
        LOGGER.error("No input frame supplied; skipping detection cycle")
        return []
    blob = prepare_input(frame, input_size)
    with session.run_scoped(blob) as tensor:
        return decoder.decode(tensor)


def log_detections(detections: Iterable[Detection]) -> None:
    for detection in detections:
        LOGGER.info(
            "Detected: %s | confidence: %.2f | box: %s",
            detection.label,
            detection.confidence,
            detection.bounding_box,
        )


def log_placements(placements: Iterable[Placement]) -> None:
    for placement in placements:
        x, y, z = placement.pose.position
        LOGGER.info(
            "Placed class %d (%s) at (%.2f, %.2f, %.2f)",
            placement.class_index,
            placement.label,
            x,
            y,
            z,
        )


class DetectionPipeline:
    """Binds a session, decoder and optional projector into one callable cycle."""

    def __init__(
        self,
        session: OnnxInferenceSession,
        decoder: TensorDecoder,
        projector: Optional[SpatialProjector] = None,
        scheduler: Optional[IntervalScheduler] = None,
        input_size: int = 640,
    ) -> None:
        self.session = session
        self.decoder = decoder
        self.projector = projector
        self.scheduler = scheduler or IntervalScheduler()
        self.input_size = input_size

    def run_once(self, frame: Optional[np.ndarray]) -> List[Detection]:
        """Static mode: decode a single frame and report what was found."""

        detections = tick(self.session, frame, self.decoder, self.input_size)
        log_detections(detections)
        return detections

    def run_cycle(self, frame: Optional[np.ndarray]) -> PipelineResult:
        detections = tick(self.session, frame, self.decoder, self.input_size)
        placements: List[Placement] = []
        if self.projector is not None and detections:
            placements = self.projector.project(detections)
            log_placements(placements)
        return PipelineResult(detections=detections, placements=placements)

    def step(self, frame_source: FrameSource, elapsed: float) -> Optional[PipelineResult]:
        """Live mode: advance the interval and run a cycle once it is due.

        The frame is only pulled from ``frame_source`` when a cycle runs.
        """

        if not self.scheduler.advance(elapsed):
            return None
        return self.run_cycle(frame_source())
