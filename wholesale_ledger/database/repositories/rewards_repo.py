from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List
import sqlite3


class DomainError(Exception):
    pass


@dataclass
class Reward:
    reward_id: int | None
    name: str
    unit: str
    quantity: float = 0.0
    purchase_price: float = 0.0
    selling_price: float = 0.0


@dataclass
class RewardRule:
    """
    Buy `main_product_quantity` of a product (in `main_product_unit`) and
    earn `reward_quantity` of a reward item.
    """
    rule_id: int | None
    main_product_id: int
    main_product_quantity: float
    main_product_unit: str
    reward_id: int
    reward_quantity: float


class RewardsRepo:
    """
    Reward catalog and reward rules. The ledger engine only reads from here;
    rewards handed out on a ledger entry never change the reward catalog.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---- Catalog ----------------------------------------------------------

    def list_rewards(self) -> List[Reward]:
        rows = self.conn.execute(
            "SELECT reward_id, name, unit, CAST(quantity AS REAL) AS quantity, "
            "CAST(purchase_price AS REAL) AS purchase_price, "
            "CAST(selling_price AS REAL) AS selling_price "
            "FROM rewards ORDER BY name"
        ).fetchall()
        return [Reward(**r) for r in rows]

    def catalog(self) -> Dict[int, Reward]:
        return {int(r.reward_id): r for r in self.list_rewards()}

    def get(self, reward_id: int) -> Reward | None:
        r = self.conn.execute(
            "SELECT reward_id, name, unit, CAST(quantity AS REAL) AS quantity, "
            "CAST(purchase_price AS REAL) AS purchase_price, "
            "CAST(selling_price AS REAL) AS selling_price "
            "FROM rewards WHERE reward_id=?",
            (reward_id,),
        ).fetchone()
        return Reward(**r) if r else None

    def create(self, reward: Reward) -> int:
        if not (reward.name or "").strip():
            raise DomainError("Reward name cannot be empty.")
        cur = self.conn.execute(
            "INSERT INTO rewards(name, unit, quantity, purchase_price, selling_price) "
            "VALUES (?, ?, ?, ?, ?)",
            (reward.name.strip(), reward.unit, reward.quantity,
             reward.purchase_price, reward.selling_price),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    # ---- Rules ------------------------------------------------------------

    def list_rules(self) -> List[RewardRule]:
        rows = self.conn.execute(
            "SELECT rule_id, main_product_id, "
            "CAST(main_product_quantity AS REAL) AS main_product_quantity, "
            "main_product_unit, reward_id, "
            "CAST(reward_quantity AS REAL) AS reward_quantity "
            "FROM reward_rules ORDER BY rule_id"
        ).fetchall()
        return [RewardRule(**r) for r in rows]

    def rules_by_product(self) -> Dict[int, RewardRule]:
        return {int(r.main_product_id): r for r in self.list_rules()}

    def set_rule(self, rule: RewardRule) -> int:
        """Insert or replace the (single) rule for rule.main_product_id."""
        if not rule.main_product_quantity > 0 or not rule.reward_quantity > 0:
            raise DomainError("Reward rule quantities must be greater than zero.")
        cur = self.conn.execute(
            "INSERT INTO reward_rules(main_product_id, main_product_quantity, main_product_unit, "
            "reward_id, reward_quantity) VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(main_product_id) DO UPDATE SET "
            "  main_product_quantity=excluded.main_product_quantity, "
            "  main_product_unit=excluded.main_product_unit, "
            "  reward_id=excluded.reward_id, "
            "  reward_quantity=excluded.reward_quantity",
            (rule.main_product_id, rule.main_product_quantity, rule.main_product_unit,
             rule.reward_id, rule.reward_quantity),
        )
        self.conn.commit()
        row = self.conn.execute(
            "SELECT rule_id FROM reward_rules WHERE main_product_id=?",
            (rule.main_product_id,),
        ).fetchone()
        return int(row["rule_id"]) if row else int(cur.lastrowid)

    def delete_rule(self, main_product_id: int) -> None:
        self.conn.execute("DELETE FROM reward_rules WHERE main_product_id=?", (main_product_id,))
        self.conn.commit()
