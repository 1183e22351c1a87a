"""
Qt table models for the dashboard and the history browser.

DataFrameModel shows a pandas DataFrame with configurable column labels and
amount formatting. EntryModel lists DailyEntry objects and exposes each entry
through EntryRole.
"""
from typing import Any, Dict, List, Optional

import pandas as pd
from PySide6 import QtCore

from ..core.models import DailyEntry
from ..settings import lib
from ..settings import locale
from ..ui import ui

# Custom roles
EntryRole = QtCore.Qt.UserRole + 1
ValueRole = QtCore.Qt.UserRole + 2


class DataFrameModel(QtCore.QAbstractTableModel):
    """
    Read-only table model over a DataFrame.

    Attributes:
        columns (dict[str, str]): DataFrame column to header label, in display order.
        amount_columns (set[str]): Columns formatted as amounts and coloured by sign.
    """

    def __init__(self, columns: Dict[str, str], amount_columns=(), parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent=parent)
        self.columns = dict(columns)
        self.amount_columns = set(amount_columns)
        self._df: pd.DataFrame = pd.DataFrame(columns=list(self.columns))

    def set_data(self, df: pd.DataFrame) -> None:
        self.beginResetModel()
        self._df = df.reset_index(drop=True) if df is not None else pd.DataFrame(columns=list(self.columns))
        self.endResetModel()

    def dataframe(self) -> pd.DataFrame:
        return self._df.copy()

    def rowCount(self, parent: QtCore.QModelIndex = QtCore.QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return len(self._df)

    def columnCount(self, parent: QtCore.QModelIndex = QtCore.QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return len(self.columns)

    def headerData(self, section: int, orientation: QtCore.Qt.Orientation, role: int = QtCore.Qt.DisplayRole) -> Any:
        if role != QtCore.Qt.DisplayRole or orientation != QtCore.Qt.Horizontal:
            return None
        if 0 <= section < len(self.columns):
            return list(self.columns.values())[section]
        return None

    def data(self, index: QtCore.QModelIndex, role: int = QtCore.Qt.DisplayRole) -> Any:
        if not index.isValid() or index.row() >= len(self._df):
            return None

        column = list(self.columns)[index.column()]
        if column not in self._df.columns:
            return None
        v = self._df.iloc[index.row()][column]

        if role == ValueRole:
            return v

        is_amount = column in self.amount_columns
        if role == QtCore.Qt.DisplayRole:
            if is_amount:
                return locale.format_amount(float(v), lib.settings['locale'])
            return str(v)
        if role == QtCore.Qt.TextAlignmentRole and is_amount:
            return QtCore.Qt.AlignRight | QtCore.Qt.AlignVCenter
        if role == QtCore.Qt.ForegroundRole and is_amount:
            return ui.amount_color(float(v))()
        return None


class EntryModel(QtCore.QAbstractTableModel):
    """Table model listing daily entries with their totals."""
    header = ['Date', 'Income', 'Vehicle Cost', 'Bazar Cost', 'Balance']
    fields = ['date', 'total_income', 'total_vehicle_cost', 'bazar_costs', 'available_balance']

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent=parent)
        self._entries: List[DailyEntry] = []

    def set_entries(self, entries: List[DailyEntry]) -> None:
        self.beginResetModel()
        self._entries = list(entries)
        self.endResetModel()

    def entry(self, row: int) -> Optional[DailyEntry]:
        if 0 <= row < len(self._entries):
            return self._entries[row]
        return None

    def rowCount(self, parent: QtCore.QModelIndex = QtCore.QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return len(self._entries)

    def columnCount(self, parent: QtCore.QModelIndex = QtCore.QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return len(self.header)

    def headerData(self, section: int, orientation: QtCore.Qt.Orientation, role: int = QtCore.Qt.DisplayRole) -> Any:
        if role == QtCore.Qt.DisplayRole and orientation == QtCore.Qt.Horizontal:
            return self.header[section]
        return None

    def data(self, index: QtCore.QModelIndex, role: int = QtCore.Qt.DisplayRole) -> Any:
        entry = self.entry(index.row()) if index.isValid() else None
        if entry is None:
            return None

        if role == EntryRole:
            return entry

        v = getattr(entry, self.fields[index.column()])
        if role == QtCore.Qt.DisplayRole:
            if index.column() == 0:
                return v
            return locale.format_amount(v, lib.settings['locale'])
        if role == QtCore.Qt.TextAlignmentRole and index.column() > 0:
            return QtCore.Qt.AlignRight | QtCore.Qt.AlignVCenter
        if role == QtCore.Qt.ForegroundRole and self.fields[index.column()] == 'available_balance':
            return ui.amount_color(v)()
        if role == QtCore.Qt.ToolTipRole and entry.parent_id:
            return 'Edited entry'
        return None
