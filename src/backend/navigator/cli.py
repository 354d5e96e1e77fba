# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import argparse
import logging
import sys
from functools import partial
from pathlib import Path
from typing import Optional, Sequence, Tuple

import uvicorn

from navigator.main import create_app
from navigator.runtime import build_runtime

logger = logging.getLogger(__name__)


def parse_navigator_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for the navigator service."""
    parser = argparse.ArgumentParser(
        description="Navigator service for obstacle detection, distance alerts and descriptions"
    )
    parser.add_argument(
        "--detector-model-path",
        type=str,
        default=None,
        help="Path to the detector model file. If not provided, uses config default.",
    )
    parser.add_argument(
        "--segmenter-model-path",
        type=str,
        default=None,
        help=(
            "Path to an ONNX segmentation model (.onnx), or a directory used as "
            "the torchvision weight cache. If not provided, uses the torchvision default."
        ),
    )
    parser.add_argument(
        "--replay-dir",
        type=str,
        default=None,
        help="Directory of recorded .npz frames to feed the pipeline.",
    )
    parser.add_argument(
        "--replay-fps",
        type=float,
        default=None,
        help="Replay cadence in frames per second (default: REPLAY_FPS or 30).",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind the server to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8002,
        help="Port to bind the server to (default: 8002)",
    )
    return parser.parse_args(argv)


def validate_path(path_str: Optional[str], is_dir: bool = False) -> Tuple[Optional[Path], bool]:
    """Resolve a path argument.

    Returns:
        (resolved path or None, validation success). Empty input is valid and yields None.
    """
    if not path_str:
        return None, True

    path = Path(path_str).resolve()
    if not path.exists():
        path_type = "directory" if is_dir else "file"
        logger.error(f"{path_type.capitalize()} does not exist: {path}")
        return None, False

    if is_dir != path.is_dir():
        expected = "directory" if is_dir else "file"
        logger.error(f"Expected a {expected}: {path}")
        return None, False

    return path, True


def validate_segmenter_path(path_str: Optional[str]) -> Tuple[Optional[Path], bool]:
    """Accept an ONNX model file or a torchvision weight cache directory."""
    if path_str and Path(path_str).suffix.lower() == ".onnx":
        return validate_path(path_str)
    return validate_path(path_str, is_dir=True)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point for the navigator service CLI."""
    args = parse_navigator_arguments(argv)

    detector_model_path, is_valid = validate_path(args.detector_model_path)
    if not is_valid:
        sys.exit(1)
    segmenter_model_path, is_valid = validate_segmenter_path(args.segmenter_model_path)
    if not is_valid:
        sys.exit(1)
    replay_dir, is_valid = validate_path(args.replay_dir, is_dir=True)
    if not is_valid:
        sys.exit(1)

    app = create_app(
        partial(
            build_runtime,
            detector_model_path=detector_model_path,
            segmenter_model_path=segmenter_model_path,
            replay_dir=replay_dir,
            replay_fps=args.replay_fps,
        )
    )
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
