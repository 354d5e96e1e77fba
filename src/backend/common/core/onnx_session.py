# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import ast
import json
import logging
from pathlib import Path
from typing import Any, Optional, Sequence

try:  # pragma: no cover - optional dependency import
    import onnxruntime as ort  # type: ignore[import-not-found,import-untyped]
except Exception:  # pragma: no cover - handled during backend selection
    ort = None

logger = logging.getLogger(__name__)

_PREFERRED_PROVIDERS = [
    "CUDAExecutionProvider",
    "ROCMExecutionProvider",
    "CoreMLExecutionProvider",
    "DmlExecutionProvider",
    "CPUExecutionProvider",
]


def resolve_providers(configured: Sequence[str]) -> list[str]:
    """Choose ONNX Runtime execution providers, preferring GPU-capable ones."""
    if configured:
        return list(configured)
    if ort is None:
        return []
    available = ort.get_available_providers()
    providers = [p for p in _PREFERRED_PROVIDERS if p in available]
    return providers or available


def create_session(model_path: Path, providers: Sequence[str], purpose: str) -> Any:
    """Open an ONNX Runtime inference session.

    Raises:
        RuntimeError: onnxruntime is not installed.
        FileNotFoundError: the model file does not exist.
    """
    if ort is None:
        raise RuntimeError(
            f"onnxruntime is required for the ONNX {purpose} backend. Install "
            "`onnxruntime` (CPU) or the appropriate GPU package such as "
            "`onnxruntime-gpu` or `onnxruntime-rocm`."
        )
    if not model_path.exists():
        raise FileNotFoundError(f"ONNX {purpose} model not found at '{model_path}'.")

    sess_options = ort.SessionOptions()
    sess_options.enable_mem_pattern = False
    sess_options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
    logger.info(
        "Opening ONNX session",
        extra={"purpose": purpose, "model_path": str(model_path)},
    )
    return ort.InferenceSession(
        str(model_path),
        providers=resolve_providers(providers) or None,
        sess_options=sess_options,
    )


def metadata_labels(session: Any) -> Optional[list[str]]:
    """Read a label table from ONNX model metadata.

    Accepts a JSON list under ``labels`` or an index->name mapping under
    ``names`` (the form written by ultralytics exports).
    """
    try:
        meta = session.get_modelmeta().custom_metadata_map or {}
    except AttributeError:
        return None

    if "labels" in meta:
        parsed: Any = json.loads(meta["labels"])
    elif "names" in meta:
        parsed = ast.literal_eval(meta["names"])
    else:
        return None

    if isinstance(parsed, dict):
        return [str(parsed[key]) for key in sorted(parsed, key=int)]
    return [str(item) for item in parsed]
