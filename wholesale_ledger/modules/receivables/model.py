from PySide6.QtCore import QAbstractTableModel, Qt, QModelIndex

from ...database.repositories.receivables_repo import Receivable
from ...utils.helpers import fmt_money

_SOURCE_LABELS = {
    "manual": "Manual",
    "ledger_due": "Ledger due",
    "ledger_commission": "Ledger commission",
    "ledger_payment": "Ledger payment",
}


class ReceivablesTableModel(QAbstractTableModel):
    """
    An employee's receivable rows, newest first, with a signed amount
    (due +, payment -) so the column sums to the balance.
    """

    HEADERS = ["ID", "Date", "Type", "Amount", "Source", "Ledger", "Note"]

    def __init__(self, rows: list[Receivable]):
        super().__init__()
        self._rows = rows

    def rowCount(self, parent=QModelIndex()):
        return len(self._rows)

    def columnCount(self, parent=QModelIndex()):
        return len(self.HEADERS)

    def data(self, index, role=Qt.DisplayRole):
        if not index.isValid():
            return None
        r = self._rows[index.row()]
        if role in (Qt.DisplayRole, Qt.EditRole):
            signed = r.amount if r.type == "due" else -r.amount
            values = [
                r.receivable_id,
                r.date,
                r.type.capitalize(),
                fmt_money(signed),
                _SOURCE_LABELS.get(r.origin, r.origin),
                f"#{r.ledger_id}" if r.ledger_id is not None else "",
                r.note or "",
            ]
            return values[index.column()]
        return None

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            return self.HEADERS[section]
        return super().headerData(section, orientation, role)

    def at(self, row: int) -> Receivable:
        return self._rows[row]

    def replace(self, rows: list[Receivable]):
        self.beginResetModel()
        self._rows = rows
        self.endResetModel()
