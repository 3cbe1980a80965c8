"""
Maintenance entry point.

    python -m wholesale_ledger [init|verify] [DB_PATH]

init    create or upgrade the database (idempotent)
verify  compare product stock with the stock journal; exit 1 on drift
"""
from __future__ import annotations

import sys

from .database import get_connection
from .database.repositories.stock_journal_repo import StockJournalRepo
from .utils.loggers import get_logger

COMMANDS = ("init", "verify")


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    log = get_logger()

    command = args.pop(0) if args and args[0] in COMMANDS else "init"
    db_path = args[0] if args else None

    conn = get_connection(db_path)
    try:
        if command == "init":
            log.info("Database ready")
            return 0

        drift = StockJournalRepo(conn).verify()
        for d in drift:
            log.warning(
                "Stock drift for %s (#%s): stored %s, journal %s",
                d["name"], d["product_id"], d["quantity"], d["journal_quantity"],
            )
        if not drift:
            log.info("Stock matches the journal")
        return 1 if drift else 0
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())
