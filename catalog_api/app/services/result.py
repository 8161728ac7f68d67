"""
Uniform result envelope returned by every public service operation.

A ``Result`` is either a success carrying ``data`` or a failure whose
``error`` is one of the kinds in ``core.errors.ErrorKind``.  The
``service_operation`` decorator turns classified ``ServiceError``
exceptions raised inside an operation into failure results and maps
anything unexpected to an ``internal`` failure after logging it.
"""

import functools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from ..core import messages
from ..core.errors import ERROR_BY_KIND, ErrorKind, InternalError, ServiceError, StoreFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    status: int
    message: str
    data: Optional[T] = None
    error: Optional[ErrorKind] = None
    retryable: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any = None, message: str = "", status: int = 200) -> "Result":
        return cls(status=status, message=message, data=data)

    @classmethod
    def failure(cls, exc: ServiceError) -> "Result":
        return cls(
            status=exc.status,
            message=exc.message,
            error=exc.kind,
            retryable=getattr(exc, "retryable", False),
        )

    def unwrap(self) -> T:
        """Return ``data`` or raise the error this result carries."""
        if self.error is None:
            return self.data
        if self.error is ErrorKind.STORE_FAILURE:
            raise StoreFailureError(self.message, retryable=self.retryable)
        raise ERROR_BY_KIND[self.error](self.message)


def service_operation(func: Callable[..., Awaitable[Result]]) -> Callable[..., Awaitable[Result]]:
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Result:
        try:
            return await func(*args, **kwargs)
        except ServiceError as exc:
            logger.info("%s failed (%s): %s", func.__qualname__, exc.kind.value, exc.message)
            return Result.failure(exc)
        except Exception:
            logger.exception("Unexpected failure in %s", func.__qualname__)
            return Result.failure(InternalError(messages.DEFAULT_ERROR))

    return wrapper
