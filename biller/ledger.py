"""Ledger and register service: bills, per-channel transactions and running totals."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from biller.errors import (
    InvalidBillStateError,
    PartialWriteError,
    SettlementMismatchError,
    StoreError,
    ValidationError,
)
from biller.models import Bill, BillStatus, Channel, Transaction, to_timestamp, utc_now
from biller.money import ZERO, to_money
from biller.store import DocumentStore

logger = logging.getLogger(__name__)

BILLS = "bills"
REGISTERS = "registers"
REGISTER_FIELD = "total"


def _time_range(start: datetime, end: datetime) -> list[tuple[str, str, str]]:
    return [("time", ">=", to_timestamp(start)), ("time", "<=", to_timestamp(end))]


class LedgerService:
    """
    Owns persisted bills, transactions and registers.

    Bill, transaction and register writes are independent store calls made in
    that order with no rollback. Once a bill is stored it is the source of
    truth; a failure in its transaction or register writes is logged and the
    registers are left to drift (see `register_drift`).
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def record_bill(self, bill: Bill) -> str:
        bill_id = await self.store.add(BILLS, bill.to_document())
        logger.info("Recorded %s bill %s total=%s cash=%s upi=%s", bill.status.value, bill_id, bill.total, bill.cash, bill.upi)
        await self._apply_settlement(bill_id, bill.cash, bill.upi)
        return bill_id

    async def record_manual_transaction(self, channel: Channel, amount: Decimal, reason: str) -> str:
        """
        Append a signed adjustment to a channel and move its register by the same amount.

        Raises PartialWriteError when the transaction landed but the register
        increment did not.
        """
        if not reason.strip():
            raise ValidationError("Reason is required.")
        amount = to_money(amount)
        transaction = Transaction(channel=channel, amount=amount, reason=reason.strip())
        transaction_id = await self.store.add(channel.collection, transaction.to_document())
        try:
            await self.store.increment(REGISTERS, channel.value, REGISTER_FIELD, amount)
        except StoreError as exc:
            logger.error(
                "Register %s increment of %s failed after transaction %s was written: %s",
                channel.value,
                amount,
                transaction_id,
                exc,
            )
            raise PartialWriteError(
                f"Transaction {transaction_id} saved but {channel.value} register was not updated",
                transaction_id,
            ) from exc
        logger.info("Manual %s transaction %s amount=%s reason=%r", channel.value, transaction_id, amount, reason)
        return transaction_id

    async def settle_pending_bill(self, bill: Bill, cash: Decimal, upi: Decimal) -> Bill:
        """Turn a pending bill into a paid one; the only update a stored bill allows."""
        if bill.id is None:
            raise InvalidBillStateError("Bill has not been recorded")
        cash, upi = to_money(cash), to_money(upi)
        if cash < 0 or upi < 0:
            raise ValidationError("Cash and UPI portions cannot be negative.")
        current_doc = await self.store.get(BILLS, bill.id)
        if current_doc is None:
            raise InvalidBillStateError(f"Bill {bill.id} does not exist")
        current = Bill.from_document(current_doc)
        if current.status is not BillStatus.PENDING:
            raise InvalidBillStateError(f"Bill {bill.id} is {current.status.value}, not Pending")
        if cash + upi != current.total:
            raise SettlementMismatchError(
                f"Cash {cash} + UPI {upi} = {cash + upi} does not match bill total {current.total}"
            )

        settled = replace(current, status=BillStatus.PAID, cash=cash, upi=upi)
        await self.store.update(BILLS, bill.id, {"status": settled.status.value, "cash": str(cash), "upi": str(upi)})
        logger.info("Settled pending bill %s cash=%s upi=%s", bill.id, cash, upi)
        await self._apply_settlement(bill.id, cash, upi)
        return settled

    async def query_bills(self, start: datetime, end: datetime) -> list[Bill]:
        docs = await self.store.query(BILLS, _time_range(start, end))
        return [Bill.from_document(doc) for doc in docs]

    async def query_pending_bills(self, start: datetime, end: datetime) -> list[Bill]:
        docs = await self.store.query(BILLS, _time_range(start, end) + [("status", "==", BillStatus.PENDING.value)])
        return [Bill.from_document(doc) for doc in docs]

    async def query_transactions(self, channel: Channel, start: datetime, end: datetime) -> list[Transaction]:
        docs = await self.store.query(channel.collection, _time_range(start, end))
        return [Transaction.from_document(channel, doc) for doc in docs]

    async def get_register_total(self, channel: Channel) -> Decimal:
        doc = await self.store.get(REGISTERS, channel.value)
        if doc is None or REGISTER_FIELD not in doc:
            return ZERO
        return to_money(str(doc[REGISTER_FIELD]))

    async def register_drift(self, channel: Channel) -> Decimal:
        """
        Register total minus the sum of every transaction in the channel.

        Non-zero means a partial write happened. Read only; nothing is corrected.
        """
        docs = await self.store.query(channel.collection)
        ledger_sum = sum((to_money(str(doc["amount"])) for doc in docs), ZERO)
        return to_money(await self.get_register_total(channel) - ledger_sum)

    async def _apply_settlement(self, bill_id: str, cash: Decimal, upi: Decimal) -> None:
        for channel, amount in ((Channel.CASH, cash), (Channel.UPI, upi)):
            if amount <= 0:
                continue
            try:
                transaction = Transaction(channel=channel, amount=amount, reason=bill_id, time=utc_now())
                await self.store.add(channel.collection, transaction.to_document())
                await self.store.increment(REGISTERS, channel.value, REGISTER_FIELD, amount)
            except StoreError:
                logger.exception(
                    "Bill %s stored but its %s leg of %s was not fully applied; register may drift",
                    bill_id,
                    channel.value,
                    amount,
                )
