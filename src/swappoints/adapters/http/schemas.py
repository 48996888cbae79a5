"""
Request Schemas - JSON Bodies Accepted by the HTTP API

Field names keep the camelCase spelling used by the web client. Business
rules (positive amounts, card format, phone format) are enforced by the
services so that they hold for every caller, not only HTTP.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class RatesUpdate(BaseModel):
    USDT: Optional[Decimal] = None
    TON: Optional[Decimal] = None


class LoginRequest(BaseModel):
    phone: str
    password: Optional[str] = None
    isRegister: bool = False


class DepositRequest(BaseModel):
    userId: str
    amount: Decimal


class DepositConfirmRequest(BaseModel):
    userId: str
    amount: Decimal
    txHash: str


class WithdrawRequest(BaseModel):
    userId: str
    amount: Decimal
    card: str


class CreateOrderRequest(BaseModel):
    direction: str
    amount: Decimal
    cardNumber: str
    userId: Optional[str] = None


class AdminDepositConfirm(BaseModel):
    txHash: Optional[str] = Field(default=None, max_length=256)
