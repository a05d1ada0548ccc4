"""
Payment models - exports from submodules.

This file imports and re-exports models from the ledger submodule
so Django's migration system can discover them.
"""

from payments.ledger.models import TransactionRecord, TransactionSource

__all__ = ["TransactionRecord", "TransactionSource"]
