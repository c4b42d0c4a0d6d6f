"""
Unified exception handling for API routes.

This module provides a decorator that handles exceptions consistently across all
API route handlers, mapping localbox exceptions to appropriate HTTP status codes.
"""
import functools
import logging
from typing import Callable, TypeVar

from fastapi import HTTPException

from localbox.exceptions import (
    RuntimeNotInitializedError,
    NotFoundError,
    ProvisioningError,
    WriteFilesError,
)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)


def handle_route_exceptions(func: F) -> F:
    """
    Decorator that provides unified exception handling for API route handlers.

    Maps localbox exceptions to appropriate HTTP status codes:
    - 404: NotFoundError (unknown or expired sandbox, command or task)
    - 400: KeyError / ValueError (missing or invalid payload fields)
    - 503: RuntimeNotInitializedError (service unavailable)
    - 500: ProvisioningError, WriteFilesError and all other exceptions

    HTTPException instances are re-raised as-is to preserve custom status codes
    set within route handlers.

    Usage:
        @router.post("/my_endpoint")
        @handle_route_exceptions
        async def my_endpoint():
            ...
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except RuntimeNotInitializedError as e:
            raise HTTPException(status_code=503, detail=str(e))
        except WriteFilesError as e:
            raise HTTPException(status_code=500, detail={
                "error": e.message,
                "failed_paths": e.failed_paths,
            })
        except ProvisioningError as e:
            raise HTTPException(status_code=500, detail=str(e))
        except KeyError as e:
            raise HTTPException(status_code=400, detail=f"Missing field: {e.args[0]}")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"Unhandled error in {func.__name__}")
            raise HTTPException(status_code=500, detail=str(e))

    return wrapper
