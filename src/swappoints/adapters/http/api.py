"""
HTTP API - FastAPI Routes for the Exchange Service

This module exposes the services over HTTP/JSON. Route handlers only parse
input, call exactly one service operation and render the result; every rule
lives in the application layer.

Operator routes (``/api/admin/*``, rate updates, deposit confirmation) require
the ``X-Admin-Token`` header. With no token configured they are all refused.

Files that USE this module:
- swappoints.app (create_app builds the ASGI application)
- tests.test_api (TestClient)

Files that this module USES:
- swappoints.app (Services container, type only)
- swappoints.adapters.http.schemas (request bodies)
- swappoints.adapters.http.errors (exception handlers)
"""
from __future__ import annotations

import logging
import secrets
import time
from typing import TYPE_CHECKING, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request

from swappoints.adapters.http.errors import register_error_handlers
from swappoints.adapters.http.schemas import (
    AdminDepositConfirm,
    CreateOrderRequest,
    DepositConfirmRequest,
    DepositRequest,
    LoginRequest,
    RatesUpdate,
    WithdrawRequest,
)
from swappoints.domain.errors import UnauthorizedError, ValidationError
from swappoints.domain.models import OrderStatus, TransactionStatus, TransactionType

if TYPE_CHECKING:
    from swappoints.app import Services

logger = logging.getLogger(__name__)


def _parse_enum(enum_type, value: Optional[str], label: str):
    if value is None or value == "":
        return None
    try:
        return enum_type(value)
    except ValueError:
        raise ValidationError(f"Unknown {label}: {value}")


def create_app(services: "Services", admin_token: str = "") -> FastAPI:
    """
    Build the FastAPI application around already-wired services.

    Args:
        services: Service container (see swappoints.app.build_services)
        admin_token: Shared secret for operator routes; empty disables them
    """
    app = FastAPI(title="SwapPoints", version="1.0.0")
    app.state.services = services
    register_error_handlers(app)

    accounts = services.accounts
    orders = services.orders
    ledger = services.ledger
    admin = services.admin

    def require_admin(x_admin_token: Optional[str] = Header(default=None)) -> None:
        if not admin_token:
            raise UnauthorizedError("Admin access is not configured")
        if not x_admin_token or not secrets.compare_digest(x_admin_token.encode(), admin_token.encode()):
            raise UnauthorizedError("Invalid admin token")

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method, request.url.path, response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    # --- rates ------------------------------------------------------------

    @app.get("/api/rates")
    def get_rates():
        return services.rates.get().view()

    @app.post("/api/rates", dependencies=[Depends(require_admin)])
    def update_rates(body: RatesUpdate):
        rates = services.rates.set(usdt=body.USDT, ton=body.TON)
        return {"success": True, "rates": rates.view()}

    # --- accounts ---------------------------------------------------------

    @app.post("/api/login")
    def login(body: LoginRequest):
        user = accounts.login_or_register(body.phone, body.password, body.isRegister)
        return user.public_view()

    @app.get("/api/user/{user_id}")
    def get_user(user_id: str):
        return accounts.get_balances(user_id)

    @app.get("/api/user/{user_id}/history")
    def get_history(user_id: str):
        return [tx.view() for tx in ledger.history(user_id)]

    # --- deposits and withdrawals -----------------------------------------

    @app.post("/api/deposit/request")
    def request_deposit(body: DepositRequest):
        tx = ledger.request_deposit(body.userId, body.amount)
        return {"success": True, "message": "Deposit request created", "transaction": tx.view()}

    @app.post("/api/deposit/confirm", dependencies=[Depends(require_admin)])
    def confirm_deposit(body: DepositConfirmRequest):
        _, user = ledger.confirm_deposit(body.userId, body.amount, body.txHash)
        return {"success": True, "balance": user.balance_usdt}

    @app.post("/api/withdraw")
    def withdraw(body: WithdrawRequest):
        tx, user = ledger.request_withdraw(body.userId, body.amount, body.card)
        return {"success": True, "transaction": tx.view(), "balance": user.balance_usdt}

    # --- exchange orders --------------------------------------------------

    @app.post("/api/create-order")
    def create_order(body: CreateOrderRequest):
        order = orders.create(body.direction, body.amount, body.cardNumber, user_id=body.userId)
        return order.receipt_view()

    @app.get("/api/order/{order_id}")
    def get_order(order_id: str):
        return orders.get_status(order_id).status_view()

    # --- public status ----------------------------------------------------

    @app.get("/api/stats")
    def stats():
        return admin.summary()

    @app.get("/api/health")
    def health():
        # Backend detail (paths, errors) is only served on /api/admin/health
        return {"status": services.store.check().state}

    # --- operator routes --------------------------------------------------

    router = APIRouter(prefix="/api/admin", dependencies=[Depends(require_admin)])

    @router.get("/orders")
    def admin_orders(status: Optional[str] = None):
        wanted = _parse_enum(OrderStatus, status, "order status")
        orders.expire_overdue()
        return [o.admin_view() for o in admin.list_orders(wanted)]

    @router.get("/users")
    def admin_users():
        return [u.admin_view() for u in admin.list_users()]

    @router.get("/transactions")
    def admin_transactions(type: Optional[str] = None, status: Optional[str] = None):
        tx_type = _parse_enum(TransactionType, type, "transaction type")
        tx_status = _parse_enum(TransactionStatus, status, "transaction status")
        return [t.view() for t in admin.list_transactions(tx_type, tx_status)]

    @router.get("/export")
    def admin_export():
        orders.expire_overdue()
        return admin.export()

    @router.get("/reconciliation")
    def admin_reconciliation():
        return admin.reconciliation()

    @router.get("/health")
    def admin_health():
        return services.health.get_overall_health()

    @router.post("/order/{order_id}/confirm")
    def admin_confirm_order(order_id: str):
        order = orders.confirm(order_id)
        return {"success": True, "status": order.status.value}

    @router.post("/order/{order_id}/received")
    def admin_order_received(order_id: str):
        order = orders.mark_received(order_id)
        return {"success": True, "status": order.status.value}

    @router.post("/order/{order_id}/cancel")
    def admin_cancel_order(order_id: str):
        order = orders.cancel(order_id)
        return {"success": True, "status": order.status.value}

    @router.post("/deposit/{transaction_id}/confirm")
    def admin_confirm_deposit(transaction_id: str, body: Optional[AdminDepositConfirm] = None):
        tx, user = ledger.confirm_deposit_by_id(transaction_id, body.txHash if body else None)
        return {"success": True, "transaction": tx.view(), "balance": user.balance_usdt}

    @router.post("/withdraw/{transaction_id}/confirm")
    def admin_confirm_withdraw(transaction_id: str):
        tx = ledger.confirm_withdraw(transaction_id)
        return {"success": True, "transaction": tx.view()}

    @router.post("/withdraw/{transaction_id}/refund")
    def admin_refund_withdraw(transaction_id: str):
        tx, user = ledger.refund_withdraw(transaction_id)
        return {"success": True, "transaction": tx.view(), "balance": user.balance_usdt}

    app.include_router(router)
    return app
