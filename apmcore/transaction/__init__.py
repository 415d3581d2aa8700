"""
Transaction Module

Per-request instrumentation: the transaction record, response
interception, error capture and apdex classification.
"""

from apmcore.transaction.attributes import AgentAttributes, Attributes
from apmcore.transaction.errors import (
    HIGH_SECURITY_ERROR_MSG,
    ErrorCollection,
    ErrorRecord,
)
from apmcore.transaction.transaction import (
    Transaction,
    TransactionInput,
    TransactionSnapshot,
)

__all__ = [
    "HIGH_SECURITY_ERROR_MSG",
    "AgentAttributes",
    "Attributes",
    "ErrorCollection",
    "ErrorRecord",
    "Transaction",
    "TransactionInput",
    "TransactionSnapshot",
]
