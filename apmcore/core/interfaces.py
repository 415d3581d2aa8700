"""
Core Interfaces and Protocols

Defines the contracts between the transaction core and its external
collaborators.

Design decisions:
- Protocol-based for structural subtyping
- Minimal interface surface
- No implementation details leak through
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from apmcore.transaction.transaction import Transaction


# =============================================================================
# RESPONSE SINK PROTOCOL
# =============================================================================

@runtime_checkable
class ResponseSink(Protocol):
    """
    Outbound response writer wrapped by a transaction.

    Implemented by: framework adapters, test doubles
    Used by: Transaction.write / Transaction.write_header
    """

    @property
    def headers(self) -> Mapping[str, str]:
        """Response headers as they stand when the status is written."""
        ...

    def write(self, data: bytes) -> int:
        """Write body bytes, returning the number written."""
        ...

    def write_header(self, code: int) -> None:
        """Write the status line."""
        ...


# =============================================================================
# HARVEST CONSUMER PROTOCOL
# =============================================================================

@runtime_checkable
class HarvestConsumer(Protocol):
    """
    Receives finalized transactions.

    Implemented by: Application
    Used by: Transaction.end
    """

    def consume(self, run_id: str, txn: "Transaction") -> None:
        """Accept a finalized transaction; called at most once per transaction."""
        ...

