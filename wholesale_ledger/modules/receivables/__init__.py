# wholesale_ledger/modules/receivables/__init__.py

from .balances import balances_by_employee, employee_balance
