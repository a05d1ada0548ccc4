"""
Payment admin configuration.

The ledger admin lives in the ledger submodule; importing it here
registers it when Django autodiscovers payments.admin.
"""

from payments.ledger.admin import TransactionRecordAdmin

__all__ = ["TransactionRecordAdmin"]
