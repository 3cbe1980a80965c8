from __future__ import annotations
from dataclasses import dataclass
import sqlite3


# Domain-level error the controller can surface directly (e.g., toast/snackbar)
class DomainError(Exception):
    pass


@dataclass
class Employee:
    employee_id: int | None
    name: str
    phone: str | None = None
    role: str = "salesperson"
    daily_salary: float = 0.0


class EmployeesRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    @staticmethod
    def _ensure_non_empty(value: str | None, field_label: str) -> None:
        if value is None or value.strip() == "":
            raise DomainError(f"{field_label} cannot be empty.")

    # ---- Queries ----------------------------------------------------------

    def list_employees(self) -> list[Employee]:
        rows = self.conn.execute(
            "SELECT employee_id, name, phone, role, CAST(daily_salary AS REAL) AS daily_salary "
            "FROM employees ORDER BY name"
        ).fetchall()
        return [Employee(**r) for r in rows]

    def get(self, employee_id: int) -> Employee | None:
        r = self.conn.execute(
            "SELECT employee_id, name, phone, role, CAST(daily_salary AS REAL) AS daily_salary "
            "FROM employees WHERE employee_id=?",
            (employee_id,),
        ).fetchone()
        return Employee(**r) if r else None

    def exists(self, employee_id: int | None) -> bool:
        if employee_id is None:
            return False
        r = self.conn.execute(
            "SELECT 1 FROM employees WHERE employee_id=?", (employee_id,)
        ).fetchone()
        return r is not None

    # ---- Commands ---------------------------------------------------------

    def create(self, name: str, phone: str | None = None, role: str = "salesperson",
               daily_salary: float = 0.0) -> int:
        self._ensure_non_empty(name, "Employee name")
        cur = self.conn.execute(
            "INSERT INTO employees(name, phone, role, daily_salary) VALUES (?, ?, ?, ?)",
            (name.strip(), (phone or "").strip() or None, role, float(daily_salary)),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def update(self, employee: Employee) -> None:
        if employee.employee_id is None:
            raise DomainError("Cannot update an employee without an id.")
        self._ensure_non_empty(employee.name, "Employee name")
        self.conn.execute(
            "UPDATE employees SET name=?, phone=?, role=?, daily_salary=? WHERE employee_id=?",
            (
                employee.name.strip(),
                (employee.phone or "").strip() or None,
                employee.role,
                float(employee.daily_salary),
                employee.employee_id,
            ),
        )
        self.conn.commit()
