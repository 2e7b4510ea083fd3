"""Tests for evmledger.ingestion.status."""
import pytest

from evmledger.ingestion.schema import RawReceipt, TransactionStatus
from evmledger.ingestion.status import classify_status


def _receipt(status):
    return RawReceipt(transaction_hash="0x" + "ab" * 32, status=status, gas_used=21_000)


@pytest.mark.parametrize(
    "code, expected",
    [
        (1, TransactionStatus.SUCCESS),
        (0, TransactionStatus.FAILED),
        (2, TransactionStatus.PENDING),
        (255, TransactionStatus.PENDING),
        (None, TransactionStatus.PENDING),
    ],
)
def test_classify_status(code, expected):
    assert classify_status(_receipt(code)) is expected
