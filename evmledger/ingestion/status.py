"""Receipt status classification."""
from __future__ import annotations

from evmledger.ingestion.schema import RawReceipt, TransactionStatus

RECEIPT_STATUS_SUCCESS = 1
RECEIPT_STATUS_FAILED = 0


def classify_status(receipt: RawReceipt) -> TransactionStatus:
    """Map the receipt's execution status code to a ``TransactionStatus``.

    Any code other than 1 or 0 (including a missing one) is pending.
    """
    if receipt.status == RECEIPT_STATUS_SUCCESS:
        return TransactionStatus.SUCCESS
    if receipt.status == RECEIPT_STATUS_FAILED:
        return TransactionStatus.FAILED
    return TransactionStatus.PENDING
