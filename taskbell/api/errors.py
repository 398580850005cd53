"""
領域例外 -> HTTP 応答の写像

- ValidationError -> 400 {"detail": {"message", "errors"}}
- NotFoundError -> 404
- PersistenceError -> 503
- PermissionDeniedError -> 409

ルーターは `raise to_http_exception(exc) from exc` で使う。
pydantic の型エラー（RequestValidationError）も 400 の同じ形へ寄せる。
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from taskbell.tasks.errors import (
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    TaskError,
    ValidationError,
)


logger = logging.getLogger(__name__)

# エラー位置の先頭に付く区分（利用者には不要なので落とす）
_LOC_SECTIONS = {"body", "query", "path", "header"}


def validation_detail(errors: list[str]) -> dict:
    """400 応答の detail を組み立てる。"""

    return {"message": "; ".join(errors) or "invalid input", "errors": list(errors)}


def to_http_exception(exc: TaskError) -> HTTPException:
    """領域例外を HTTPException に変換する。"""

    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=validation_detail(exc.errors))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"task not found: {exc.task_id}")
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"notification permission is {exc.permission}",
        )
    if isinstance(exc, PersistenceError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="task storage unavailable")
    logger.error("unmapped task error: %s", type(exc).__name__)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal error")


def _format_request_error(err: dict) -> str:
    loc = [str(x) for x in (err.get("loc") or ()) if str(x) not in _LOC_SECTIONS]
    msg = str(err.get("msg") or "invalid value")
    return f"{'.'.join(loc)}: {msg}" if loc else msg


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """pydantic の入力エラーを 400 の共通形で返す。"""

    errors = [_format_request_error(e) for e in exc.errors()]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": validation_detail(errors)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
