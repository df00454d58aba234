"""ONNX Runtime session lifecycle for the car detector."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional, Sequence

import numpy as np

try:  # pragma: no cover - import guarded for environments without onnxruntime
    import onnxruntime as ort
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "onnxruntime is required for car detection inference. Install the project with "
        "`pip install -e .` before running detect.py."
    ) from exc

from ..models import RawTensor

LOGGER = logging.getLogger(__name__)

DEFAULT_PROVIDERS = ("CPUExecutionProvider",)


class ModelLoadError(RuntimeError):
    """Raised when the detector model cannot be loaded."""


class OnnxInferenceSession:
    """Owns an ``onnxruntime.InferenceSession`` and hands out scoped output tensors."""

    def __init__(self, session: "ort.InferenceSession", model_path: Optional[Path] = None) -> None:
        self._session: Optional["ort.InferenceSession"] = session
        self.model_path = model_path
        self.input_name = session.get_inputs()[0].name

    @property
    def closed(self) -> bool:
        return self._session is None

    def run(self, blob: np.ndarray) -> RawTensor:
        """Execute the model on a ``1x3xSxS`` blob and wrap the first output."""

        if self._session is None:
            raise RuntimeError("Inference session has been shut down")
        outputs = self._session.run(None, {self.input_name: blob})
        return RawTensor.from_output(outputs[0])

    @contextmanager
    def run_scoped(self, blob: np.ndarray) -> Generator[RawTensor, None, None]:
        """Yield the output tensor and release it however the caller exits."""

        tensor = self.run(blob)
        try:
            yield tensor
        finally:
            tensor.release()

    def close(self) -> None:
        if self._session is None:
            return
        LOGGER.info("Releasing inference session for %s", self.model_path)
        self._session = None


def initialize(model_path: Path, providers: Optional[Sequence[str]] = None) -> OnnxInferenceSession:
    """Load the ONNX model; any failure is fatal and raised before the first cycle."""

    model_path = Path(model_path).expanduser()
    if not model_path.exists():
        raise ModelLoadError(f"ONNX model not found at {model_path}")
    LOGGER.info("Loading ONNX model from %s", model_path)
    try:
        session = ort.InferenceSession(str(model_path), providers=list(providers or DEFAULT_PROVIDERS))
    except Exception as exc:
        raise ModelLoadError(f"Unable to load ONNX model {model_path}: {exc}") from exc

    inputs = session.get_inputs()
    if inputs and inputs[0].shape and len(inputs[0].shape) != 4:
        raise ModelLoadError(f"Unexpected input shape: {inputs[0].shape}")
    return OnnxInferenceSession(session, model_path=model_path)


def shutdown(session: Optional[OnnxInferenceSession]) -> None:
    if session is not None:
        session.close()


@contextmanager
def inference_session(
    model_path: Path, providers: Optional[Sequence[str]] = None
) -> Generator[OnnxInferenceSession, None, None]:
    """Context manager pairing ``initialize`` with ``shutdown``."""

    session = initialize(model_path, providers)
    try:
        yield session
    finally:
        shutdown(session)
