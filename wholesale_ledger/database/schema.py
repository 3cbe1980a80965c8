from pathlib import Path
import sqlite3
import sys

from ..constants import LEDGER_ID_START

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== CORE TABLES ======================== */

/* -------- employees (read-only for the ledger engine) -------- */
CREATE TABLE IF NOT EXISTS employees (
    employee_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL,
    phone        TEXT,
    role         TEXT NOT NULL DEFAULT 'salesperson',
    daily_salary NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(daily_salary AS REAL) >= 0)
);

/* -------- products --------
   quantity is denominated in the stocking unit; a sale in the sub-unit
   removes quantity / conversion_factor stocking units. */
CREATE TABLE IF NOT EXISTS products (
    product_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    name              TEXT NOT NULL,
    company           TEXT NOT NULL DEFAULT '',
    purchase_price    NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(purchase_price AS REAL) >= 0),
    selling_price     NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(selling_price AS REAL) >= 0),
    stocking_unit     TEXT NOT NULL,
    sub_unit          TEXT,
    conversion_factor NUMERIC NOT NULL DEFAULT 1,
    quantity          REAL NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_products_company ON products(company);

/* -------- stock journal: products.quantity == SUM(delta) per product -------- */
CREATE TABLE IF NOT EXISTS stock_movements (
    movement_id INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id  INTEGER NOT NULL,
    ledger_id   INTEGER,             -- no FK: movements outlive deleted ledger entries
    delta       REAL    NOT NULL,    -- stocking units, signed
    reason      TEXT    NOT NULL CHECK (reason IN ('opening','adjustment','ledger')),
    created_at  TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (product_id) REFERENCES products(product_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_stock_movements_product ON stock_movements(product_id);
CREATE INDEX IF NOT EXISTS idx_stock_movements_ledger  ON stock_movements(ledger_id);

/* -------- reward catalog + rules (read-only for the ledger engine) -------- */
CREATE TABLE IF NOT EXISTS rewards (
    reward_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    name           TEXT NOT NULL,
    unit           TEXT NOT NULL,
    quantity       REAL NOT NULL DEFAULT 0,
    purchase_price NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(purchase_price AS REAL) >= 0),
    selling_price  NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(selling_price AS REAL) >= 0)
);

CREATE TABLE IF NOT EXISTS reward_rules (
    rule_id               INTEGER PRIMARY KEY AUTOINCREMENT,
    main_product_id       INTEGER NOT NULL,
    main_product_quantity NUMERIC NOT NULL CHECK (CAST(main_product_quantity AS REAL) > 0),
    main_product_unit     TEXT    NOT NULL,
    reward_id             INTEGER NOT NULL,
    reward_quantity       NUMERIC NOT NULL CHECK (CAST(reward_quantity AS REAL) > 0),
    FOREIGN KEY (main_product_id) REFERENCES products(product_id) ON DELETE CASCADE,
    FOREIGN KEY (reward_id)       REFERENCES rewards(reward_id)   ON DELETE CASCADE
);
/* one rule per main product */
CREATE UNIQUE INDEX IF NOT EXISTS idx_reward_rules_one_per_product
ON reward_rules(main_product_id);

/* -------- id counters (monotonic, survive deletes) -------- */
CREATE TABLE IF NOT EXISTS counters (
    name  TEXT PRIMARY KEY,
    value INTEGER NOT NULL
);

/* ======================== LEDGER ======================== */

CREATE TABLE IF NOT EXISTS ledger_entries (
    ledger_id              INTEGER PRIMARY KEY,
    date                   DATE    NOT NULL,
    day                    TEXT    NOT NULL DEFAULT '',
    market                 TEXT    NOT NULL CHECK (length(trim(market)) > 0),
    salesperson_id         INTEGER NOT NULL,
    amount_paid            NUMERIC NOT NULL DEFAULT 0,
    due_assigned_to        INTEGER,
    commission             NUMERIC NOT NULL DEFAULT 0,
    commission_assigned_to INTEGER,
    note                   TEXT,
    modified_reward_ids    TEXT    NOT NULL DEFAULT '[]',  -- JSON list of reward ids
    /* derived figures, rewritten on every save */
    gross_sale             NUMERIC NOT NULL DEFAULT 0,
    total_damaged          NUMERIC NOT NULL DEFAULT 0,
    total_reward_value     NUMERIC NOT NULL DEFAULT 0,
    total_sale             NUMERIC NOT NULL DEFAULT 0,
    amount_due             NUMERIC NOT NULL DEFAULT 0,
    created_at             TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at             TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (salesperson_id)         REFERENCES employees(employee_id),
    FOREIGN KEY (due_assigned_to)        REFERENCES employees(employee_id),
    FOREIGN KEY (commission_assigned_to) REFERENCES employees(employee_id)
);
CREATE INDEX IF NOT EXISTS idx_ledger_date        ON ledger_entries(date);
CREATE INDEX IF NOT EXISTS idx_ledger_salesperson ON ledger_entries(salesperson_id);

/* product_id carries no FK: lines keep their cached product_name after the
   product is deleted. */
CREATE TABLE IF NOT EXISTS ledger_items (
    item_id           INTEGER PRIMARY KEY AUTOINCREMENT,
    ledger_id         INTEGER NOT NULL,
    product_id        INTEGER NOT NULL,
    product_name      TEXT    NOT NULL DEFAULT '',
    unit              TEXT    NOT NULL,
    price_per_unit    NUMERIC NOT NULL CHECK (CAST(price_per_unit AS REAL) >= 0),
    summary_quantity  REAL    NOT NULL CHECK (summary_quantity >= 0),
    quantity_returned REAL    NOT NULL DEFAULT 0 CHECK (quantity_returned >= 0),
    quantity_sold     REAL    NOT NULL CHECK (quantity_sold >= 0),
    total_price       NUMERIC NOT NULL,
    FOREIGN KEY (ledger_id) REFERENCES ledger_entries(ledger_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_ledger_items_ledger  ON ledger_items(ledger_id);
CREATE INDEX IF NOT EXISTS idx_ledger_items_product ON ledger_items(product_id);

CREATE TABLE IF NOT EXISTS ledger_damaged_items (
    item_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    ledger_id      INTEGER NOT NULL,
    product_id     INTEGER NOT NULL,
    product_name   TEXT    NOT NULL DEFAULT '',
    unit           TEXT    NOT NULL,
    price_per_unit NUMERIC NOT NULL CHECK (CAST(price_per_unit AS REAL) >= 0),
    quantity       REAL    NOT NULL CHECK (quantity >= 0),
    total_price    NUMERIC NOT NULL,
    FOREIGN KEY (ledger_id) REFERENCES ledger_entries(ledger_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_ledger_damaged_ledger ON ledger_damaged_items(ledger_id);

CREATE TABLE IF NOT EXISTS ledger_reward_items (
    item_id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    ledger_id               INTEGER NOT NULL,
    reward_id               INTEGER NOT NULL,
    reward_name             TEXT    NOT NULL DEFAULT '',
    main_product_id         INTEGER,
    unit                    TEXT    NOT NULL DEFAULT '',
    price_per_unit          NUMERIC NOT NULL CHECK (CAST(price_per_unit AS REAL) >= 0),
    purchase_price_per_unit NUMERIC,   -- NULL: resolve from the reward catalog
    quantity_sold           REAL    NOT NULL CHECK (quantity_sold >= 0),
    total_price             NUMERIC NOT NULL,
    FOREIGN KEY (ledger_id) REFERENCES ledger_entries(ledger_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_ledger_rewards_ledger ON ledger_reward_items(ledger_id);

/* -------- employee receivables --------
   origin says where a row came from; ledger-derived rows point at their
   ledger entry through ledger_id. */
CREATE TABLE IF NOT EXISTS receivable_transactions (
    receivable_id INTEGER PRIMARY KEY AUTOINCREMENT,
    ledger_id     INTEGER,
    origin        TEXT    NOT NULL DEFAULT 'manual'
                  CHECK (origin IN ('manual','ledger_due','ledger_commission','ledger_payment')),
    employee_id   INTEGER NOT NULL,
    date          DATE    NOT NULL,
    type          TEXT    NOT NULL CHECK (type IN ('due','payment')),
    amount        NUMERIC NOT NULL CHECK (CAST(amount AS REAL) > 0),
    note          TEXT    NOT NULL DEFAULT '',
    payment_kind  TEXT    CHECK (payment_kind IN ('due','commission')),  -- ledger_payment rows only
    CHECK ((origin = 'manual') = (ledger_id IS NULL)),
    CHECK (origin NOT IN ('ledger_due','ledger_commission') OR type = 'due'),
    CHECK (origin <> 'ledger_payment' OR type = 'payment'),
    CHECK ((origin = 'ledger_payment') = (payment_kind IS NOT NULL)),
    FOREIGN KEY (ledger_id)   REFERENCES ledger_entries(ledger_id) ON DELETE CASCADE,
    FOREIGN KEY (employee_id) REFERENCES employees(employee_id)
);
CREATE INDEX IF NOT EXISTS idx_receivables_employee ON receivable_transactions(employee_id);
CREATE INDEX IF NOT EXISTS idx_receivables_ledger   ON receivable_transactions(ledger_id);
/* at most one due-posting and one commission-posting per ledger entry */
CREATE UNIQUE INDEX IF NOT EXISTS idx_receivables_one_posting
ON receivable_transactions(ledger_id, origin)
WHERE origin IN ('ledger_due','ledger_commission');

/* -------- daily summaries (pre-filled drafts for a ledger entry) -------- */
CREATE TABLE IF NOT EXISTS daily_summaries (
    summary_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    date           DATE    NOT NULL,
    market         TEXT    NOT NULL,
    salesperson_id INTEGER NOT NULL,
    status         TEXT    NOT NULL DEFAULT 'pending' CHECK (status IN ('pending','used')),
    ledger_id      INTEGER,
    CHECK ((status = 'used') = (ledger_id IS NOT NULL)),
    FOREIGN KEY (salesperson_id) REFERENCES employees(employee_id),
    FOREIGN KEY (ledger_id)      REFERENCES ledger_entries(ledger_id)
);
/* a ledger entry consumes at most one summary */
CREATE UNIQUE INDEX IF NOT EXISTS idx_daily_summaries_one_ledger
ON daily_summaries(ledger_id) WHERE ledger_id IS NOT NULL;

/* ======================== TRIGGERS ======================== */

DROP TRIGGER IF EXISTS trg_ledger_items_sold_guard;
CREATE TRIGGER trg_ledger_items_sold_guard
BEFORE INSERT ON ledger_items
FOR EACH ROW
BEGIN
  SELECT CASE
    WHEN NEW.quantity_returned > NEW.summary_quantity
    THEN RAISE(ABORT, 'Returned quantity cannot exceed summary quantity')
    ELSE 1
  END;
END;

DROP TRIGGER IF EXISTS trg_products_conversion_guard_ins;
CREATE TRIGGER trg_products_conversion_guard_ins
BEFORE INSERT ON products
FOR EACH ROW
BEGIN
  SELECT CASE
    WHEN NEW.sub_unit IS NOT NULL AND NEW.sub_unit = NEW.stocking_unit
    THEN RAISE(ABORT, 'Sub-unit must differ from the stocking unit')
    ELSE 1
  END;
END;

DROP TRIGGER IF EXISTS trg_products_conversion_guard_upd;
CREATE TRIGGER trg_products_conversion_guard_upd
BEFORE UPDATE OF stocking_unit, sub_unit ON products
FOR EACH ROW
BEGIN
  SELECT CASE
    WHEN NEW.sub_unit IS NOT NULL AND NEW.sub_unit = NEW.stocking_unit
    THEN RAISE(ABORT, 'Sub-unit must differ from the stocking unit')
    ELSE 1
  END;
END;

/* ======================== VIEWS ======================== */

DROP VIEW IF EXISTS v_employee_balance;
CREATE VIEW v_employee_balance AS
SELECT e.employee_id,
       e.name,
       COALESCE(SUM(CASE WHEN r.type = 'due' THEN CAST(r.amount AS REAL)
                         ELSE -CAST(r.amount AS REAL) END), 0.0) AS balance
FROM employees e
LEFT JOIN receivable_transactions r ON r.employee_id = e.employee_id
GROUP BY e.employee_id, e.name;

DROP VIEW IF EXISTS v_stock_drift;
CREATE VIEW v_stock_drift AS
SELECT p.product_id,
       p.name,
       CAST(p.quantity AS REAL)              AS quantity,
       COALESCE(SUM(m.delta), 0.0)           AS journal_quantity
FROM products p
LEFT JOIN stock_movements m ON m.product_id = p.product_id
GROUP BY p.product_id, p.name, p.quantity;
"""


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema on an open connection and seed counters."""
    conn.executescript(SQL)
    conn.execute(
        "INSERT OR IGNORE INTO counters(name, value) VALUES ('ledger', ?)",
        (LEDGER_ID_START,),
    )
    conn.commit()


def init_schema(db_path: Path | str = "ledger.db") -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        apply_schema(conn)
    conn.close()


if __name__ == "__main__":
    from ..config import DB_PATH

    target = sys.argv[1] if len(sys.argv) > 1 else DB_PATH
    init_schema(target)
    print(f"✓ DB applied to {target}")
