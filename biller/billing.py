"""Billing engine: the payment-method state machine for one table at a time."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum

from biller.errors import InvalidTransitionError, SessionSaveError, TableStateError, ValidationError
from biller.ledger import LedgerService
from biller.models import Bill, BillStatus, CartLine
from biller.money import ZERO, parse_amount
from biller.sessions import TableSessionStore
from biller.upi import upi_link

logger = logging.getLogger(__name__)


class PaymentState(str, Enum):
    IDLE = "idle"
    AWAITING_METHOD = "awaiting_method"
    AWAITING_UPI_SCAN = "awaiting_upi_scan"
    AWAITING_CASH_SPLIT = "awaiting_cash_split"
    AWAITING_PENDING_CONTACT = "awaiting_pending_contact"
    SETTLED = "settled"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    UPI = "UPI"
    BOTH = "Both"
    PENDING = "Pending"


_AWAITING_STATES = frozenset(
    {
        PaymentState.AWAITING_METHOD,
        PaymentState.AWAITING_UPI_SCAN,
        PaymentState.AWAITING_CASH_SPLIT,
        PaymentState.AWAITING_PENDING_CONTACT,
    }
)


@dataclass(frozen=True)
class Settlement:
    """
    Terminal outcome of one billing flow. `bill` is None for the empty-table close.

    `table_freed` is False when the bill was recorded but the table slot could
    not be saved; the table then stays occupied until `release_table` succeeds.
    """

    table_id: int
    bill: Bill | None
    table_freed: bool = True


class BillingEngine:
    """
    Drives one table from "generate bill" to a recorded outcome.

    Draft values (bill amount, cash portion) live here until a transition
    commits them. Nothing touches the table or the ledger until a terminal
    transition, so cancel is always side-effect free.
    """

    def __init__(self, sessions: TableSessionStore, ledger: LedgerService) -> None:
        self.sessions = sessions
        self.ledger = ledger
        self.state = PaymentState.IDLE
        self.table_id: int | None = None
        self.bill_amount = ZERO
        self.cash_portion = ZERO
        self._items: tuple[CartLine, ...] = ()
        self._busy = False
        # table id -> bill id for tables whose bill is recorded but which are still occupied
        self._unreleased: dict[int, str] = {}

    @property
    def upi_amount(self) -> Decimal:
        return self.bill_amount - self.cash_portion

    @property
    def payment_link(self) -> str:
        return upi_link(self.upi_amount)

    @property
    def is_busy(self) -> bool:
        return self._busy

    async def generate_bill(self, table_id: int) -> Settlement | None:
        """
        Start settling a table.

        An empty table is closed on the spot with no bill and a Settlement is
        returned. Otherwise the total is captured and the engine waits for a
        payment method (returns None).
        """
        self._require(PaymentState.IDLE, PaymentState.SETTLED)
        if table_id in self._unreleased:
            raise TableStateError(
                f"Table {table_id} is already billed ({self._unreleased[table_id]}); free the table instead"
            )
        table = self.sessions.table(table_id)
        self._reset()
        self.table_id = table_id
        if table.total == 0:
            self.sessions.close_table(table_id)
            self.state = PaymentState.SETTLED
            logger.info("Table %s closed with zero total; no bill", table_id)
            return Settlement(table_id=table_id, bill=None)
        self.bill_amount = table.total
        self._items = table.items
        self.state = PaymentState.AWAITING_METHOD
        return None

    async def choose_method(self, method: PaymentMethod) -> Settlement | None:
        self._require(PaymentState.AWAITING_METHOD)
        if method is PaymentMethod.CASH:
            return await self._finalize(BillStatus.PAID, cash=self.bill_amount, upi=ZERO)
        if method is PaymentMethod.UPI:
            self.cash_portion = ZERO
            self.state = PaymentState.AWAITING_UPI_SCAN
        elif method is PaymentMethod.BOTH:
            self.state = PaymentState.AWAITING_CASH_SPLIT
        elif method is PaymentMethod.PENDING:
            self.state = PaymentState.AWAITING_PENDING_CONTACT
        else:
            raise InvalidTransitionError(f"Unknown payment method {method!r}")
        return None

    async def submit_cash_split(self, raw_cash: str) -> Settlement | None:
        """
        Take the cash part of a split payment.

        Invalid input raises ValidationError and leaves the state alone. Cash
        covering the whole bill settles as plain cash; otherwise the rest goes
        to the UPI scan.
        """
        self._require(PaymentState.AWAITING_CASH_SPLIT)
        cash = parse_amount(raw_cash, "Cash amount")
        if cash < 0 or cash > self.bill_amount:
            raise ValidationError(f"Please enter a valid cash amount (0 to {self.bill_amount}).")
        if cash == self.bill_amount:
            return await self._finalize(BillStatus.PAID, cash=cash, upi=ZERO)
        self.cash_portion = cash
        self.state = PaymentState.AWAITING_UPI_SCAN
        return None

    async def confirm_upi(self) -> Settlement:
        self._require(PaymentState.AWAITING_UPI_SCAN)
        return await self._finalize(BillStatus.PAID, cash=self.cash_portion, upi=self.upi_amount)

    async def submit_pending_contact(self, contact: str) -> Settlement:
        self._require(PaymentState.AWAITING_PENDING_CONTACT)
        contact = contact.strip()
        if not contact:
            raise ValidationError("Phone number or name is required.")
        return await self._finalize(BillStatus.PENDING, cash=ZERO, upi=ZERO, mobile=contact)

    def unreleased_bill(self, table_id: int) -> str | None:
        return self._unreleased.get(table_id)

    def release_table(self, table_id: int) -> None:
        """
        Free a table whose bill was recorded but whose close could not be saved.

        No bill is written. If the save fails again the table stays listed and
        SessionSaveError propagates.
        """
        if table_id not in self._unreleased:
            raise TableStateError(f"Table {table_id} has no recorded bill waiting to be freed")
        self.sessions.close_table(table_id, settled=True)
        bill_id = self._unreleased.pop(table_id)
        logger.info("Table %s freed after bill %s", table_id, bill_id)

    def cancel(self) -> None:
        """Abandon the flow before anything is written."""
        if self._busy:
            raise InvalidTransitionError("Cannot cancel while the bill is being recorded")
        if self.state not in _AWAITING_STATES:
            raise InvalidTransitionError(f"Nothing to cancel in state {self.state.value}")
        logger.info("Billing for table %s canceled at %s", self.table_id, self.state.value)
        self._reset()

    def _require(self, *states: PaymentState) -> None:
        if self._busy:
            raise InvalidTransitionError("A bill is already being recorded")
        if self.state not in states:
            raise InvalidTransitionError(f"Action not allowed in state {self.state.value}")

    def _reset(self) -> None:
        self.state = PaymentState.IDLE
        self.table_id = None
        self.bill_amount = ZERO
        self.cash_portion = ZERO
        self._items = ()

    async def _finalize(self, status: BillStatus, cash: Decimal, upi: Decimal, mobile: str | None = None) -> Settlement:
        if self.table_id is None:
            raise InvalidTransitionError("No table is being billed")
        bill = Bill(items=self._items, total=self.bill_amount, status=status, cash=cash, upi=upi, mobile=mobile)
        self._busy = True
        try:
            # A failed bill write propagates and leaves state and table as they were.
            bill_id = await self.ledger.record_bill(bill)
        finally:
            self._busy = False
        table_id = self.table_id
        settlement = Settlement(table_id=table_id, bill=replace(bill, id=bill_id))
        # The bill is in the ledger; from here on the flow must not be retried.
        self.state = PaymentState.SETTLED
        try:
            self.sessions.close_table(table_id, settled=True)
        except SessionSaveError:
            logger.exception("Bill %s recorded but table %s could not be freed", bill_id, table_id)
            self._unreleased[table_id] = bill_id
            return replace(settlement, table_freed=False)
        return settlement
