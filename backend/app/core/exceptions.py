"""RFC 7807 Problem Details error handling and domain error kinds."""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class ProblemDetailError(Exception):
    """Raise for RFC 7807 problem+json responses."""

    def __init__(
        self,
        status: int,
        title: str,
        detail: str,
        error_type: str | None = None,
    ):
        super().__init__(detail)
        self.status = status
        self.title = title
        self.detail = detail
        self.error_type = error_type or "about:blank"


class DomainError(ProblemDetailError):
    """Base for errors raised by the service layer.

    ``kind`` is the machine-readable error kind; it is also used as the
    problem ``type`` so callers can branch on it without parsing ``detail``.
    """

    kind = "error"
    status_code = 500
    default_title = "Error"

    def __init__(self, detail: str, title: str | None = None):
        super().__init__(
            status=self.status_code,
            title=title or self.default_title,
            detail=detail,
            error_type=f"/problems/{self.kind}",
        )


class NotFoundError(DomainError):
    kind = "not-found"
    status_code = 404
    default_title = "Not Found"


class ConflictError(DomainError):
    kind = "conflict"
    status_code = 409
    default_title = "Conflict"


class StorageFailureError(DomainError):
    kind = "storage-failure"
    status_code = 503
    default_title = "Storage Failure"


class HierarchyCorruptedError(StorageFailureError):
    """Parent links loop or exceed the tenant's category count."""

    status_code = 500
    default_title = "Category Hierarchy Corrupted"


async def problem_detail_handler(request: Request, exc: ProblemDetailError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status,
        content={
            "type": exc.error_type,
            "title": exc.title,
            "status": exc.status,
            "detail": exc.detail,
            "instance": str(request.url.path),
        },
        media_type="application/problem+json",
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "type": "about:blank",
            "title": exc.detail if isinstance(exc.detail, str) else "Error",
            "status": exc.status_code,
            "detail": exc.detail,
            "instance": str(request.url.path),
        },
        media_type="application/problem+json",
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "type": "/problems/invalid-input",
            "title": "Validation Error",
            "status": 422,
            "detail": jsonable_errors(exc),
            "instance": str(request.url.path),
        },
        media_type="application/problem+json",
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """pydantic error dicts may carry the raw exception in ``ctx``; drop it."""
    errors = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        errors.append(err)
    return errors
