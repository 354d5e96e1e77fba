# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

import numpy as np
import torch
from torchvision.models import get_model, get_model_weights

from common.config import config
from common.core import onnx_session
from common.protocols import SegmentationBackend, SemanticClassifier
from common.utils.image import prepare_segmentation_input

logger = logging.getLogger(__name__)

# Factories let us swap segmentation backends without changing call sites.
SegmenterFactory = Callable[[Optional[Path]], SegmentationBackend]

_backend_registry: dict[str, SegmenterFactory] = {}


def register_segmenter_backend(name: str, factory: SegmenterFactory) -> None:
    """Register a segmentation backend factory by name."""
    normalized = name.strip().lower()
    if not normalized:
        raise ValueError("Segmenter backend name cannot be empty")
    _backend_registry[normalized] = factory


def available_segmenter_backends() -> list[str]:
    """Return the list of registered segmentation backends."""
    return sorted(_backend_registry)


def _build_engine(
    model_path: Optional[Path], backend: Optional[str]
) -> SegmentationBackend:
    backend_name = (backend or config.SEGMENTER_BACKEND).lower()
    try:
        factory = _backend_registry[backend_name]
    except KeyError:
        known = ", ".join(available_segmenter_backends())
        raise ValueError(
            f"Unsupported SEGMENTER_BACKEND '{backend_name}'. "
            f"Known backends: {known or 'none'}."
        ) from None
    logger.info("Initializing fallback classifier", extra={"backend": backend_name})
    return factory(model_path)


class _Segmenter(SemanticClassifier):
    """Async wrapper that runs a dense-labeling backend off the event loop."""

    def __init__(
        self, model_path: Optional[Path] = None, backend: Optional[str] = None
    ) -> None:
        self._engine: SegmentationBackend = _build_engine(model_path, backend)
        self._lock = asyncio.Lock()

    @property
    def labels(self) -> Sequence[str]:
        return self._engine.labels

    async def classify(self, frame_rgb: np.ndarray) -> np.ndarray:
        async with self._lock:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, self._engine.predict, frame_rgb)


def load_segmenter(
    model_path: Optional[Path] = None, backend: Optional[str] = None
) -> Optional[_Segmenter]:
    """Build the fallback classifier, or return None if it cannot be loaded.

    A classifier that fails to load disables the fallback path for the
    lifetime of the process; detection keeps working without it.
    """
    if not config.SEGMENTER_ENABLED:
        logger.info("Fallback classifier disabled by configuration")
        return None
    if backend is None and model_path is not None and Path(model_path).suffix == ".onnx":
        backend = "onnx"
    try:
        segmenter = _Segmenter(model_path=model_path, backend=backend)
    except Exception as err:
        logger.warning(
            "Fallback classifier unavailable; running detector only",
            extra={"error": str(err)},
        )
        return None
    logger.info("Fallback classifier ready", extra={"labels": len(segmenter.labels)})
    return segmenter


class _SegmenterEngine:
    """Base class for synchronous segmentation backends."""

    labels: Sequence[str] = ()

    def predict(self, frame_rgb: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class TorchvisionSegmenter(_SegmenterEngine):
    """Semantic segmentation with pretrained torchvision weights."""

    def __init__(
        self,
        cache_directory: Optional[Path] = None,
        model_name: str = config.SEGMENTER_MODEL_NAME,
    ) -> None:
        if cache_directory is not None:
            if Path(cache_directory).exists() and not Path(cache_directory).is_dir():
                raise NotADirectoryError(
                    f"Segmentation weight cache must be a directory: {cache_directory}"
                )
            torch.hub.set_dir(str(cache_directory))
            logger.info("Using segmentation weight cache: %s", cache_directory)

        weights = get_model_weights(model_name).DEFAULT
        self.labels = list(weights.meta["categories"])
        self._transform = weights.transforms()
        self.device = (
            torch.device("cuda") if torch.cuda.is_available() else torch.device("cpu")
        )
        self._model = get_model(model_name, weights=weights).to(self.device).eval()

    def predict(self, frame_rgb: np.ndarray) -> np.ndarray:
        tensor = torch.from_numpy(np.ascontiguousarray(frame_rgb)).permute(2, 0, 1)
        batch = self._transform(tensor).unsqueeze(0).to(self.device)
        with torch.no_grad():
            logits = self._model(batch)["out"]
        return logits.argmax(dim=1)[0].to(torch.int32).cpu().numpy()


class OnnxSegmenter(_SegmenterEngine):
    """Semantic segmentation with an exported ONNX model.

    The label table must be embedded in the model metadata.
    """

    def __init__(self, model_path: Optional[Path] = None) -> None:
        self.model_path = Path(model_path or config.SEGMENTER_ONNX_MODEL_PATH).resolve()
        self._session = onnx_session.create_session(
            self.model_path,
            config.SEGMENTER_ONNX_PROVIDERS or config.ONNX_PROVIDERS,
            purpose="segmenter",
        )
        labels = onnx_session.metadata_labels(self._session)
        if not labels:
            raise RuntimeError(
                f"ONNX segmentation model '{self.model_path}' has no label metadata"
            )
        self.labels = labels
        self._input_name = self._session.get_inputs()[0].name
        self._output_name = self._session.get_outputs()[0].name
        self._imgsz = config.SEGMENTER_IMAGE_SIZE

    def predict(self, frame_rgb: np.ndarray) -> np.ndarray:
        batch = prepare_segmentation_input(frame_rgb, self._imgsz)
        output = np.asarray(
            self._session.run([self._output_name], {self._input_name: batch})[0]
        )
        if output.ndim == 4:  # (1, C, H, W) logits
            return np.argmax(output, axis=1)[0].astype(np.int32)
        if output.ndim == 3:  # (1, H, W) label indices
            return output[0].astype(np.int32)
        return output.astype(np.int32)


# Register built-in backends
register_segmenter_backend("torch", TorchvisionSegmenter)
register_segmenter_backend("onnx", OnnxSegmenter)
