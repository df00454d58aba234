"""Decode flat YOLO output tensors into detections."""
from __future__ import annotations

import logging
import math
from typing import List, Mapping, Optional, Union

import numpy as np

from ..models import BoundingBox, Detection, RawTensor
from ..utils.geometry import non_max_suppression
from .class_labels import ClassLabelTable

LOGGER = logging.getLogger(__name__)

X, Y, W, H, CONF, CLASS = range(6)


def round_class_index(value: float) -> int:
    """Round a float class field to the nearest integer; non-finite values map to -1."""

    if not math.isfinite(value):
        return -1
    return int(round(value))


class TensorDecoder:
    """Turns fixed-stride ``[x, y, w, h, conf, class]`` records into ``Detection`` objects.

    Defaults reproduce the lenient reference behaviour: no NMS, no confidence
    clamping, no clipping of boxes to the input frame, scan order preserved.
    """

    def __init__(
        self,
        labels: Optional[Union[ClassLabelTable, Mapping[int, str]]] = None,
        confidence_threshold: float = 0.4,
        *,
        enable_nms: bool = False,
        iou_threshold: float = 0.45,
        clamp_confidence: bool = False,
        clamp_boxes: bool = False,
        input_size: int = 640,
    ) -> None:
        if isinstance(labels, ClassLabelTable):
            self.labels = labels
        else:
            self.labels = ClassLabelTable(labels)
        self.confidence_threshold = confidence_threshold
        self.enable_nms = enable_nms
        self.iou_threshold = iou_threshold
        self.clamp_confidence = clamp_confidence
        self.clamp_boxes = clamp_boxes
        self.input_size = input_size

    def decode(self, tensor: RawTensor, confidence_threshold: Optional[float] = None) -> List[Detection]:
        """Return detections with ``confidence >= threshold`` in tensor order."""

        threshold = self.confidence_threshold if confidence_threshold is None else confidence_threshold
        records = tensor.records()
        if records.shape[0] == 0:
            return []

        confidences = records[:, CONF]
        if self.clamp_confidence:
            confidences = np.clip(confidences, 0.0, 1.0)
        indices = np.flatnonzero(~(confidences < confidences.dtype.type(threshold)))
        if indices.size == 0:
            return []

        class_indices = [round_class_index(float(records[i, CLASS])) for i in indices]
        boxes = [self._to_box(records[i]) for i in indices]

        if self.enable_nms and len(boxes) > 1:
            keep = non_max_suppression(
                np.array([box.as_xyxy() for box in boxes]),
                confidences[indices],
                self.iou_threshold,
                class_ids=np.array(class_indices),
            )
        else:
            keep = range(len(boxes))

        detections = [
            Detection(
                label=self.labels.label_for(class_indices[k]),
                confidence=float(confidences[indices[k]]),
                bounding_box=boxes[k],
                class_index=class_indices[k],
            )
            for k in keep
        ]
        LOGGER.debug(
            "Decoded %d of %d candidates (threshold=%.2f)", len(detections), records.shape[0], threshold
        )
        return detections

    def _to_box(self, record: np.ndarray) -> BoundingBox:
        box = BoundingBox.from_center(
            float(record[X]), float(record[Y]), float(record[W]), float(record[H])
        )
        if not self.clamp_boxes:
            return box
        limit = float(self.input_size)
        x1 = min(max(box.x, 0.0), limit)
        y1 = min(max(box.y, 0.0), limit)
        x2 = min(max(box.x2, 0.0), limit)
        y2 = min(max(box.y2, 0.0), limit)
        return BoundingBox(x=x1, y=y1, width=x2 - x1, height=y2 - y1)


def decode(tensor: RawTensor, confidence_threshold: float = 0.4) -> List[Detection]:
    """Decode with the default label table and lenient policy."""

    return TensorDecoder().decode(tensor, confidence_threshold)
