"""
SwapPoints - Operator-Mediated Crypto/UAH Exchange Service

An HTTP service where users exchange USDT/TON for UAH through orders settled
by an operator, and keep an internal USDT balance fed by deposits and drained
by withdrawals. The ledger survives storage outages by falling back to an
in-memory store and reporting the durability loss.
"""

__version__ = "1.0.0"
