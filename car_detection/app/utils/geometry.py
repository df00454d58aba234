"""Geometry helper utilities for bounding boxes."""
from __future__ import annotations

from typing import List, Optional

import numpy as np


def iou(box: np.ndarray, others: np.ndarray) -> np.ndarray:
    """Intersection over union of one xyxy box against an ``(N, 4)`` array."""

    xx1 = np.maximum(box[0], others[:, 0])
    yy1 = np.maximum(box[1], others[:, 1])
    xx2 = np.minimum(box[2], others[:, 2])
    yy2 = np.minimum(box[3], others[:, 3])
    inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
    area_box = max(0.0, box[2] - box[0]) * max(0.0, box[3] - box[1])
    area_others = np.maximum(0.0, others[:, 2] - others[:, 0]) * np.maximum(0.0, others[:, 3] - others[:, 1])
    union = area_box + area_others - inter + 1e-9
    return inter / union


def non_max_suppression(
    boxes: np.ndarray,
    scores: np.ndarray,
    iou_threshold: float,
    class_ids: Optional[np.ndarray] = None,
) -> List[int]:
    """Greedy NMS over xyxy boxes, returning kept indices in ascending order.

    Boxes only suppress each other within the same class when ``class_ids`` is
    given. Equal scores keep the lower index first.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if boxes.shape[0] == 0:
        return []
    if class_ids is None:
        class_ids = np.zeros(boxes.shape[0], dtype=np.int64)
    class_ids = np.asarray(class_ids).reshape(-1)

    order = np.argsort(-scores, kind="stable")
    keep: List[int] = []
    while order.size > 0:
        current = int(order[0])
        keep.append(current)
        if order.size == 1:
            break
        rest = order[1:]
        overlaps = iou(boxes[current], boxes[rest])
        same_class = class_ids[rest] == class_ids[current]
        order = rest[~(same_class & (overlaps > iou_threshold))]
    return sorted(keep)
