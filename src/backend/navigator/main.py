# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import AsyncContextManager, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from common import __version__
from common.config import config
from common.logging_config import configure_logging
from common.metrics import configure_metrics
from navigator.routes import router
from navigator.runtime import Runtime, build_runtime

RuntimeFactory = Callable[[], Runtime]


def create_lifespan(
    runtime_factory: RuntimeFactory,
) -> Callable[[FastAPI], AsyncContextManager[None]]:
    """Create lifespan context manager that owns the pipeline runtime.

    Args:
        runtime_factory: Builds the runtime; models are loaded here, not at import.
    """

    @asynccontextmanager
    async def lifespan_context(app: FastAPI) -> AsyncIterator[None]:
        runtime = runtime_factory()
        await runtime.start()
        app.state.runtime = runtime
        try:
            yield
        finally:
            app.state.runtime = None
            await runtime.stop()

    return lifespan_context


def create_app(runtime_factory: Optional[RuntimeFactory] = None) -> FastAPI:
    """App factory to avoid import-time side effects in tests.

    Args:
        runtime_factory: If None, builds the runtime from config defaults.
    """
    configure_logging(service_name="navigator", service_version=__version__)
    configure_metrics(service_name="navigator", service_version=__version__)

    app = FastAPI(
        title="Navigator Service",
        version=__version__,
        description=(
            "Assistive navigation perception service. Fuses object detection "
            "with depth, publishes the nearest obstacle, a heat-map and a "
            "spoken description over /state and /ws."
        ),
        lifespan=create_lifespan(runtime_factory or build_runtime),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app
