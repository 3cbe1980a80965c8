from PySide6.QtCore import QAbstractTableModel, Qt, QModelIndex

from ...database.repositories.ledger_repo import LedgerEntry, LedgerItem
from ...utils.helpers import fmt_money


class LedgerTableModel(QAbstractTableModel):
    """
    Ledger list. Shows the figures stored with each entry; nothing is
    recomputed here.
    """

    HEADERS = ["ID", "Date", "Market", "Salesperson", "Total Sale", "Paid", "Commission", "Due"]

    # Raw amount_due (float) for views that color negative dues
    AMOUNT_DUE_ROLE = Qt.UserRole + 1

    def __init__(self, rows: list[LedgerEntry]):
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
        c = index.column()

        if role in (Qt.DisplayRole, Qt.EditRole):
            values = [
                r.ledger_id,
                r.date,
                r.market,
                r.salesperson_name or "",
                fmt_money(r.total_sale),
                fmt_money(r.amount_paid),
                fmt_money(r.commission),
                fmt_money(r.amount_due),
            ]
            return values[c]

        if role == Qt.TextAlignmentRole and c >= 4:
            return int(Qt.AlignRight | Qt.AlignVCenter)

        if role == self.AMOUNT_DUE_ROLE:
            return float(r.amount_due)

        return None

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            return self.HEADERS[section]
        return super().headerData(section, orientation, role)

    def at(self, row: int) -> LedgerEntry:
        return self._rows[row]

    def row_of(self, ledger_id: int) -> int:
        for i, r in enumerate(self._rows):
            if r.ledger_id == ledger_id:
                return i
        return -1

    def replace(self, rows: list[LedgerEntry]):
        self.beginResetModel()
        self._rows = rows
        self.endResetModel()


class LedgerItemsModel(QAbstractTableModel):
    HEADERS = ["#", "Product", "Unit", "Summary", "Returned", "Sold", "Price", "Line Total"]

    def __init__(self, rows: list[LedgerItem]):
        super().__init__()
        self._rows = rows

    def rowCount(self, parent=QModelIndex()):
        return len(self._rows)

    def columnCount(self, parent=QModelIndex()):
        return len(self.HEADERS)

    def data(self, idx, role=Qt.DisplayRole):
        if not idx.isValid():
            return None
        r = self._rows[idx.row()]
        if role in (Qt.DisplayRole, Qt.EditRole):
            m = [
                idx.row() + 1,
                r.product_name,
                r.unit,
                f"{float(r.summary_quantity):g}",
                f"{float(r.quantity_returned):g}",
                f"{float(r.quantity_sold):g}",
                fmt_money(r.price_per_unit),
                fmt_money(r.total_price),
            ]
            return m[idx.column()]
        return None

    def headerData(self, s, o, role=Qt.DisplayRole):
        if o == Qt.Horizontal and role == Qt.DisplayRole:
            return self.HEADERS[s]
        return super().headerData(s, o, role)

    def replace(self, rows: list[LedgerItem]):
        self.beginResetModel()
        self._rows = rows
        self.endResetModel()
