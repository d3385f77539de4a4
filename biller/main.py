"""Entry point for the café biller Textual app."""

from __future__ import annotations

from biller.biller_app import BillerApp
from biller.config import STORE_PATH
from biller.ledger import LedgerService
from biller.logs import configure_logging
from biller.sessions import JsonFileSessionSlot, TableSessionStore
from biller.store import SqliteDocumentStore


def main() -> None:
    """Run the Textual application."""
    configure_logging()
    store = SqliteDocumentStore(STORE_PATH)
    store.bootstrap_schema()
    sessions = TableSessionStore(JsonFileSessionSlot())
    BillerApp(sessions, LedgerService(store)).run()


if __name__ == "__main__":
    main()
