# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import types
from typing import Any, Optional


class DummySessionOptions:
    def __init__(
        self, enable_mem_pattern: bool = False, graph_optimization_level: Any = None
    ) -> None:
        self.enable_mem_pattern = enable_mem_pattern
        self.graph_optimization_level = graph_optimization_level


class DummySession:
    """Stands in for ``onnxruntime.InferenceSession``; records the last input batch."""

    def __init__(
        self,
        run_return: Any,
        input_name: str = "input",
        output_name: str = "output",
        metadata: Optional[dict[str, str]] = None,
    ) -> None:
        self._inputs = [types.SimpleNamespace(name=input_name)]
        self._outputs = [types.SimpleNamespace(name=output_name)]
        self._run_return = run_return
        self._metadata = metadata
        self.last_inputs: Optional[dict[str, Any]] = None

    def get_inputs(self):
        return self._inputs

    def get_outputs(self):
        return self._outputs

    def get_modelmeta(self):
        if self._metadata is None:
            raise AttributeError("no metadata")
        return types.SimpleNamespace(custom_metadata_map=self._metadata)

    def run(self, _output_names, inputs):
        self.last_inputs = inputs
        return [self._run_return]


def dummy_ort(session: DummySession) -> types.SimpleNamespace:
    return types.SimpleNamespace(
        SessionOptions=lambda: DummySessionOptions(enable_mem_pattern=True),
        GraphOptimizationLevel=types.SimpleNamespace(ORT_ENABLE_ALL="all"),
        InferenceSession=lambda *_args, **_kwargs: session,
        get_available_providers=lambda: ["CPUExecutionProvider"],
    )
