# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

import uvicorn
from fastapi import FastAPI

from bodyrig.api.devices import router as devices_router
from bodyrig.api.measurements import router as measurements_router
from bodyrig.core import lifespan
from bodyrig.exception_handlers import register_application_exception_handlers
from bodyrig.settings import get_settings


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        openapi_url=settings.openapi_url,
        version=settings.version,
        summary=settings.summary,
        description=settings.description,
        lifespan=lifespan,
    )
    app.include_router(devices_router)
    app.include_router(measurements_router)
    register_application_exception_handlers(app)
    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run("bodyrig.main:app", host=settings.host, port=settings.port)
