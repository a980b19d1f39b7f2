"""HTTP surface for the ledger (FastAPI).

Authentication happens upstream. The auth layer hands the caller identity to
this app as a request header (``X-Authenticated-User`` by default, override
with ``LEDGER_PRINCIPAL_HEADER``), or an application can pass its own
``principal_resolver`` to :func:`create_app`. The resolved
:class:`~expense_ledger.models.Principal` is passed explicitly into every
store call.

Boundary error mapping
----------------------
- ``ValidationError`` -> 400 with per-field ``errors``
- update: ``NotFoundError`` and ``UnauthorizedError`` both -> 404, so the
  response does not reveal whether someone else's record exists
- delete: ``NotFoundError`` -> 404, ``UnauthorizedError`` -> 401
- ``StorageError`` -> 500
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any

from db.client import session_scope
from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .aggregation import LedgerSummary, summarize
from .errors import NotFoundError, StorageError, UnauthorizedError, ValidationError
from .logging_setup import bound_principal, get_logger
from .models import ListFilters, Principal, Transaction
from .store import (
    create_transaction,
    delete_transaction,
    get_transaction,
    list_transactions,
    update_transaction,
)

_log = get_logger("expense_ledger.web")

PRINCIPAL_HEADER_ENV = "LEDGER_PRINCIPAL_HEADER"
DEFAULT_PRINCIPAL_HEADER = "X-Authenticated-User"
REPLAY_HEADER = "Idempotent-Replayed"

# Mount points: the canonical path plus the original client's API prefixes.
ROUTE_PREFIXES: tuple[str, ...] = ("/transactions", "/api/transactions", "/api/expenses")

PrincipalResolver = Callable[[Request], Principal | None]


def header_principal_resolver(header_name: str | None = None) -> PrincipalResolver:
    """Trust an identity header set by the upstream auth proxy."""

    name = header_name or os.getenv(PRINCIPAL_HEADER_ENV) or DEFAULT_PRINCIPAL_HEADER

    def _resolve(request: Request) -> Principal | None:
        raw = request.headers.get(name)
        if raw is None or not raw.strip():
            return None
        return Principal(owner_id=raw.strip())

    return _resolve


def require_principal(request: Request) -> Principal:
    principal = request.app.state.principal_resolver(request)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized")
    return principal


def _scope(request: Request):
    return session_scope(database_url=request.app.state.database_url)


def _parse_id(raw: str) -> int:
    # Ids are integers; anything else cannot name an existing record.
    try:
        return int(raw)
    except ValueError:
        raise NotFoundError(raw) from None


def _record_json(tx: Transaction) -> dict[str, Any]:
    return tx.model_dump(mode="json", by_alias=True)


def _summary_json(summary: LedgerSummary) -> dict[str, Any]:
    return {
        "totalIncome": summary.total_income.to_display(),
        "totalExpense": summary.total_expense.to_display(),
        "netBalance": summary.net_balance.to_display(),
        "categories": [
            {
                "category": share.category,
                "total": share.total.to_display(),
                "percent": f"{share.percent:.1f}",
            }
            for share in summary.categories
        ],
    }


def _message(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, **extra})


# ----------------------------------------------------------------------------
# Routes
# ----------------------------------------------------------------------------


def build_router() -> APIRouter:
    router = APIRouter(tags=["transactions"])

    @router.post("", status_code=status.HTTP_201_CREATED)
    def create(
        request: Request,
        payload: dict[str, Any] = Body(...),  # noqa: B008
        principal: Principal = Depends(require_principal),  # noqa: B008
    ) -> JSONResponse:
        key = payload.get("idempotencyKey", payload.get("idempotency_key"))
        if key is not None and not isinstance(key, str):
            raise ValidationError({"idempotencyKey": "must be a string"})
        with _scope(request) as session:
            result = create_transaction(
                session, owner_id=principal.owner_id, fields=payload, idempotency_key=key
            )
        headers = {} if result.created else {REPLAY_HEADER: "true"}
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content=_record_json(result.transaction),
            headers=headers,
        )

    @router.get("")
    def list_(
        request: Request,
        category: str | None = None,
        kind: str | None = None,
        type: str | None = None,  # noqa: A002 - original client parameter name
        sort: str | None = None,
        principal: Principal = Depends(require_principal),  # noqa: B008
    ) -> JSONResponse:
        filters = ListFilters(category=category, kind=kind or type, sort=sort)
        with _scope(request) as session:
            rows = list_transactions(session, owner_id=principal.owner_id, filters=filters)
        return JSONResponse(content=[_record_json(t) for t in rows])

    @router.get("/summary")
    def summary(
        request: Request,
        category: str | None = None,
        kind: str | None = None,
        principal: Principal = Depends(require_principal),  # noqa: B008
    ) -> JSONResponse:
        filters = ListFilters(category=category, kind=kind)
        with _scope(request) as session:
            rows = list_transactions(session, owner_id=principal.owner_id, filters=filters)
        return JSONResponse(content=_summary_json(summarize(rows)))

    @router.get("/{tx_id}")
    def get_one(
        request: Request,
        tx_id: str,
        principal: Principal = Depends(require_principal),  # noqa: B008
    ) -> JSONResponse:
        with _scope(request) as session:
            tx = get_transaction(session, _parse_id(tx_id))
        # Someone else's record is reported exactly like a missing one.
        if tx is None or tx.owner_id != principal.owner_id:
            return _message(status.HTTP_404_NOT_FOUND, "Transaction not found")
        return JSONResponse(content=_record_json(tx))

    @router.api_route("/{tx_id}", methods=["POST", "PUT", "PATCH"])
    def update(
        request: Request,
        tx_id: str,
        payload: dict[str, Any] = Body(...),  # noqa: B008
        principal: Principal = Depends(require_principal),  # noqa: B008
    ) -> JSONResponse:
        try:
            with _scope(request) as session:
                tx = update_transaction(
                    session, _parse_id(tx_id), owner_id=principal.owner_id, patch=payload
                )
        except (NotFoundError, UnauthorizedError) as e:
            _log.info("Update of %s refused: %s", tx_id, e.__class__.__name__)
            return _message(status.HTTP_404_NOT_FOUND, "Transaction not found or unauthorized")
        return JSONResponse(content=_record_json(tx))

    @router.delete("/{tx_id}")
    def delete(
        request: Request,
        tx_id: str,
        principal: Principal = Depends(require_principal),  # noqa: B008
    ) -> JSONResponse:
        with _scope(request) as session:
            delete_transaction(session, _parse_id(tx_id), owner_id=principal.owner_id)
        return JSONResponse(content={"message": "Transaction removed"})

    return router


# ----------------------------------------------------------------------------
# Error mapping
# ----------------------------------------------------------------------------


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(_: Request, exc: ValidationError) -> JSONResponse:
        first = next(iter(exc.errors.values()), "Invalid input")
        return _message(status.HTTP_400_BAD_REQUEST, first, errors=exc.errors)

    @app.exception_handler(RequestValidationError)
    async def _bad_body(_: Request, exc: RequestValidationError) -> JSONResponse:
        return _message(status.HTTP_400_BAD_REQUEST, "Request body must be a JSON object")

    @app.exception_handler(NotFoundError)
    async def _not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return _message(status.HTTP_404_NOT_FOUND, "Not found")

    @app.exception_handler(UnauthorizedError)
    async def _unauthorized(_: Request, exc: UnauthorizedError) -> JSONResponse:
        return _message(status.HTTP_401_UNAUTHORIZED, "Not authorized")

    @app.exception_handler(StorageError)
    async def _storage(_: Request, exc: StorageError) -> JSONResponse:
        _log.error("Storage failure: %s", exc)
        return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error.")


def create_app(
    *,
    database_url: str | None = None,
    principal_resolver: PrincipalResolver | None = None,
) -> FastAPI:
    """Build the ledger API.

    ``database_url`` falls back to ``DATABASE_URL`` at first use.
    """

    app = FastAPI(title="expense-ledger")
    app.state.database_url = database_url
    app.state.principal_resolver = principal_resolver or header_principal_resolver()

    _install_error_handlers(app)

    @app.middleware("http")
    async def _tag_logs_with_principal(request: Request, call_next):
        principal = app.state.principal_resolver(request)
        with bound_principal(principal.owner_id if principal else None):
            return await call_next(request)

    router = build_router()
    for prefix in ROUTE_PREFIXES:
        app.include_router(router, prefix=prefix)

    @app.get("/")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


__all__ = [
    "DEFAULT_PRINCIPAL_HEADER",
    "REPLAY_HEADER",
    "ROUTE_PREFIXES",
    "build_router",
    "create_app",
    "header_principal_resolver",
    "require_principal",
]
