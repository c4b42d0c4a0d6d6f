"""
FastAPI server for localbox.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from localbox import __version__
from localbox.config.defaults import RuntimeConfig
from localbox.core.runtime import SandboxRuntime
from localbox.api.routes import sandboxes, commands, tasks, health
from localbox.api.dependencies import set_runtime, get_runtime

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    runtime = get_runtime()
    await runtime.start()
    yield
    await runtime.close()


def create_app(
    runtime: Optional[SandboxRuntime] = None,
    config: Optional[RuntimeConfig] = None,
) -> FastAPI:
    """
    Create and configure the localbox FastAPI application.

    The runtime is started when the application starts serving and closed
    when it shuts down.

    Args:
        runtime: Runtime to serve; built from ``config`` when omitted.
        config: Runtime configuration, used only when ``runtime`` is omitted.

    Returns:
        Configured FastAPI application
    """
    if runtime is None:
        runtime = SandboxRuntime(config=config)
    set_runtime(runtime)

    app = FastAPI(
        title="localbox API",
        description="Local sandbox runtime for agent-driven code execution",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(sandboxes.router)
    app.include_router(commands.router)
    app.include_router(tasks.router)

    logger.debug(f"API created for sandboxes under {runtime.config.base_dir}")
    return app
