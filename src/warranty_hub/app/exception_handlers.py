"""Map domain errors to JSON HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from warranty_hub.domain.errors import InvalidStateError, WarrantyHubError

logger = logging.getLogger(__name__)


def setup_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(WarrantyHubError)
    async def warranty_hub_error_handler(request: Request, exc: WarrantyHubError):
        if exc.status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        content = {"detail": exc.message, "error": type(exc).__name__}
        if isinstance(exc, InvalidStateError) and exc.fields:
            content["fields"] = exc.fields
        return JSONResponse(status_code=exc.status_code, content=content)
