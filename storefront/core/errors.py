"""
Domain errors for the storefront.

Every error is scoped to the single user action that raised it. Routers do
not catch these; `register_exception_handlers` maps them to JSON responses
with the status code carried by the error class.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Base class for all storefront domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: Any = None):
        self.detail = detail if detail is not None else self.__class__.__name__
        super().__init__(str(self.detail))


class ValidationError(StorefrontError):
    """Bad input on a field edit or cart change. Nothing is written."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(StorefrontError):
    """Edit/delete/read target does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(StorefrontError):
    """Store access denied or role check failed. Not retried."""

    status_code = status.HTTP_403_FORBIDDEN


class CartConflictError(StorefrontError):
    """The remote cart changed between load and save."""

    status_code = status.HTTP_409_CONFLICT


class RenderDataError(StorefrontError):
    """An order is missing data required for invoicing (strict mode only)."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class PartialReplayError(StorefrontError):
    """
    Some buy-again lines failed to merge.

    Lines listed in `merged` are already in the cart and stay there.
    """

    status_code = status.HTTP_207_MULTI_STATUS

    def __init__(self, failed: list[dict[str, Any]], merged: list[dict[str, Any]]):
        self.failed = failed
        self.merged = merged
        super().__init__(
            {
                "message": f"{len(failed)} line(s) could not be added to the cart",
                "failed": failed,
                "merged": merged,
            }
        )


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, storefront_error_handler)
