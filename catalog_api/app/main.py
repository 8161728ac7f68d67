"""
Main entrypoint for the Catalog API.

This module assembles the FastAPI application, sets up logging and
includes versioned routers.  The ``create_app`` function builds and
configures the app, which is then instantiated at module import time as
``app`` so it can be served directly::

    uvicorn catalog_api.app.main:app --reload

The document store handle is opened on startup, kept on ``app.state``
for the request dependencies and closed on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from .api.responses import request_validation_handler
from .api.v1.router import router as v1_router
from .core.config import Settings, settings
from .core.db import connect, init_db
from .core.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Parameters
    ----------
    config : Optional[Settings]
        Settings to run with; the module settings read from the
        environment are used when omitted.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    config = config or settings
    setup_logging(config.log_level, config.log_file or None)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        database = connect(config)
        await init_db(database)
        app.state.database = database
        logger.info("%s %s started", config.project_name, config.api_version)
        try:
            yield
        finally:
            await database.close()

    app = FastAPI(
        title=config.project_name,
        version=config.api_version,
        debug=config.debug,
        lifespan=lifespan,
    )
    app.state.settings = config

    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(v1_router, prefix="/api/v1")

    return app


app = create_app()
