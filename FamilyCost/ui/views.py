"""Ledger widgets: dashboard, entry form, history browser and sync status.

This module defines:
    - MonthSelector: 'YYYY-MM' picker shared by the dashboard and history
    - DashboardWidget: monthly summary, unit, bazar and daily trend tables
    - EntryFormWidget: form for logging a day or editing an entry
    - HistoryWidget: month browser with version trail, edit, delete and CSV export
    - SyncStatusIndicator, SyncTokenDialog: sync state display and sync token editor
"""
import logging
from typing import Dict, List, Optional

import pandas as pd
from PySide6 import QtCore, QtGui, QtWidgets

from . import ui
from ..core.models import BazarItem, DailyEntry, make_entry
from ..data import data
from ..data.model import DataFrameModel, EntryModel, EntryRole
from ..settings import lib
from ..settings import locale
from ..ui.actions import signals


def _timezone() -> str:
    return lib.settings['timezone'] or locale.DEFAULT_TIMEZONE


def _amount(v) -> str:
    return locale.format_amount(v, lib.settings['locale'])


def _table_view(model: QtCore.QAbstractItemModel, parent=None) -> QtWidgets.QTableView:
    view = QtWidgets.QTableView(parent=parent)
    view.setModel(model)
    view.setSelectionBehavior(QtWidgets.QAbstractItemView.SelectRows)
    view.setSelectionMode(QtWidgets.QAbstractItemView.SingleSelection)
    view.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
    view.setAlternatingRowColors(True)
    view.verticalHeader().setVisible(False)
    view.horizontalHeader().setStretchLastSection(True)
    view.horizontalHeader().setSectionResizeMode(QtWidgets.QHeaderView.ResizeToContents)
    return view


class MonthSelector(QtWidgets.QDateEdit):
    """Month picker emitting the selected month as 'YYYY-MM'."""
    monthChanged = QtCore.Signal(str)

    def __init__(self, parent=None) -> None:
        super().__init__(parent=parent)
        self.setDisplayFormat('MMMM yyyy')
        self.setCalendarPopup(False)
        self.set_month(locale.get_local_month(_timezone()))
        self.dateChanged.connect(lambda _: self.monthChanged.emit(self.month()))

    def month(self) -> str:
        return self.date().toString('yyyy-MM')

    def set_month(self, yearmonth: str) -> None:
        d = QtCore.QDate.fromString(f'{yearmonth}-01', 'yyyy-MM-dd')
        if d.isValid():
            self.setDate(d)


class SummaryCard(QtWidgets.QFrame):
    """A labelled amount."""

    def __init__(self, title: str, parent=None) -> None:
        super().__init__(parent=parent)
        self.setFrameShape(QtWidgets.QFrame.StyledPanel)

        QtWidgets.QVBoxLayout(self)
        o = ui.Size.Margin(0.5)
        self.layout().setContentsMargins(o, o, o, o)

        self.title_label = QtWidgets.QLabel(title.upper(), parent=self)
        self.title_label.setStyleSheet(f'color: {ui.Color.SecondaryText(qss=True)};')
        self.layout().addWidget(self.title_label)

        self.value_label = QtWidgets.QLabel(parent=self)
        font = self.value_label.font()
        font.setPixelSize(ui.Size.LargeText(1.0))
        font.setBold(True)
        self.value_label.setFont(font)
        self.layout().addWidget(self.value_label)

    def set_value(self, value: int, colored: bool = False) -> None:
        self.value_label.setText(_amount(value))
        self.setToolTip(locale.format_currency_value(value, lib.settings['locale']))
        if colored:
            self.value_label.setStyleSheet(f'color: {ui.amount_color(value)(qss=True)};')

    def value(self) -> str:
        return self.value_label.text()


class DashboardWidget(QtWidgets.QWidget):
    """Monthly statistics of the live entries."""

    def __init__(self, parent=None) -> None:
        super().__init__(parent=parent)
        self.setObjectName('FamilyCostDashboardWidget')

        self._entries: List[DailyEntry] = []
        self.cards: Dict[str, SummaryCard] = {}

        self.unit_model = DataFrameModel(
            {'unit': 'Unit', 'income': 'Income', 'cost': 'Cost', 'net': 'Net'},
            amount_columns=('income', 'cost', 'net'),
            parent=self
        )
        self.unit_history_model = DataFrameModel(
            {'date': 'Date', 'income': 'Income', 'cost': 'Cost'},
            amount_columns=('income', 'cost'),
            parent=self
        )
        self.bazar_model = DataFrameModel(
            {'date': 'Date', 'total': 'Total', 'items': 'Items'},
            amount_columns=('total',),
            parent=self
        )
        self.trend_model = DataFrameModel(
            {'day': 'Day', 'income': 'Income', 'cost': 'Cost', 'balance': 'Balance', 'loess': 'Trend'},
            amount_columns=('income', 'cost', 'balance', 'loess'),
            parent=self
        )

        self._create_ui()
        self._connect_signals()

    def _create_ui(self) -> None:
        QtWidgets.QVBoxLayout(self)
        o = ui.Size.Margin(0.5)
        self.layout().setContentsMargins(o, o, o, o)

        self.month_selector = MonthSelector(parent=self)
        self.layout().addWidget(self.month_selector)

        grid = QtWidgets.QGridLayout()
        cards = [
            ('income', 'Month Income'),
            ('vehicle_cost', 'Vehicle Cost'),
            ('bazar_cost', 'Bazar Cost'),
            ('total_cost', 'Total Cost'),
            ('balance', 'Balance'),
            ('today_income', 'Today Income'),
            ('today_cost', 'Today Cost'),
        ]
        for i, (k, title) in enumerate(cards):
            card = SummaryCard(title, parent=self)
            self.cards[k] = card
            grid.addWidget(card, i // 4, i % 4)
        self.layout().addLayout(grid)

        splitter = QtWidgets.QSplitter(QtCore.Qt.Horizontal, parent=self)

        units = QtWidgets.QWidget(parent=splitter)
        QtWidgets.QVBoxLayout(units)
        units.layout().setContentsMargins(0, 0, 0, 0)
        units.layout().addWidget(QtWidgets.QLabel('Units', parent=units))
        self.unit_view = _table_view(self.unit_model, parent=units)
        units.layout().addWidget(self.unit_view, 1)
        self.unit_history_label = QtWidgets.QLabel(parent=units)
        units.layout().addWidget(self.unit_history_label)
        self.unit_history_view = _table_view(self.unit_history_model, parent=units)
        units.layout().addWidget(self.unit_history_view, 1)
        splitter.addWidget(units)

        bazar = QtWidgets.QWidget(parent=splitter)
        QtWidgets.QVBoxLayout(bazar)
        bazar.layout().setContentsMargins(0, 0, 0, 0)
        self.bazar_label = QtWidgets.QLabel('Bazar', parent=bazar)
        bazar.layout().addWidget(self.bazar_label)
        self.bazar_view = _table_view(self.bazar_model, parent=bazar)
        bazar.layout().addWidget(self.bazar_view, 1)
        bazar.layout().addWidget(QtWidgets.QLabel('Daily Trend', parent=bazar))
        self.trend_view = _table_view(self.trend_model, parent=bazar)
        bazar.layout().addWidget(self.trend_view, 1)
        splitter.addWidget(bazar)

        self.layout().addWidget(splitter, 1)

    def _connect_signals(self) -> None:
        signals.entriesChanged.connect(self.set_entries)
        self.month_selector.monthChanged.connect(self.refresh)
        self.unit_view.selectionModel().currentRowChanged.connect(self.show_unit_history)

        @QtCore.Slot(str, object)
        def metadata_changed(key: str, value: object) -> None:
            if key in ('locale', 'loess_fraction', 'timezone'):
                self.refresh()

        signals.metadataChanged.connect(metadata_changed)

        @QtCore.Slot(str)
        def config_changed(section: str) -> None:
            if section == 'units':
                self.refresh()

        signals.configSectionChanged.connect(config_changed)

    @QtCore.Slot(list)
    def set_entries(self, entries: List[DailyEntry]) -> None:
        self._entries = list(entries)
        self.refresh()

    @QtCore.Slot()
    def refresh(self) -> None:
        yearmonth = self.month_selector.month()
        today = locale.get_local_date(_timezone())

        summary = data.get_summary(self._entries, yearmonth, today)
        for k, card in self.cards.items():
            card.set_value(summary[k], colored=k == 'balance')
        for k in ('today_income', 'today_cost'):
            self.cards[k].setVisible(summary['is_current_month'])

        units = lib.settings.get_section('units')
        self.unit_model.set_data(data.get_unit_stats(self._entries, yearmonth, units))
        self.show_unit_history(self.unit_view.currentIndex())

        rows, count = data.get_bazar_by_date(self._entries, yearmonth)
        self.bazar_label.setText(f'Bazar ({count} items)')
        self.bazar_model.set_data(pd.DataFrame(
            [
                {
                    'date': r['date'],
                    'total': r['total'],
                    'items': ', '.join(f'{i.name} ({i.cost})' for i in r['items']),
                }
                for r in rows
            ],
            columns=['date', 'total', 'items']
        ))

        fraction = lib.settings['loess_fraction'] or 0.5
        self.trend_model.set_data(data.get_trends(self._entries, yearmonth, loess_fraction=fraction))

    @QtCore.Slot(QtCore.QModelIndex)
    def show_unit_history(self, index: QtCore.QModelIndex, *args) -> None:
        if not index.isValid():
            self.unit_history_label.setText('Select a unit to see its log')
            self.unit_history_model.set_data(None)
            return

        unit = self.unit_model.dataframe().iloc[index.row()]['unit']
        history, summary = data.get_unit_history(self._entries, self.month_selector.month(), unit)
        self.unit_history_label.setText(
            f'{unit}: income {_amount(summary["income"])}, cost {_amount(summary["cost"])}, '
            f'net {_amount(summary["net"])}'
        )
        self.unit_history_model.set_data(pd.DataFrame(
            [{'date': e.date, 'income': e.units[unit].income, 'cost': e.units[unit].cost} for e in history],
            columns=['date', 'income', 'cost']
        ))


class EntryFormWidget(QtWidgets.QWidget):
    """Form that logs a day, or a new version of an entry when editing."""

    def __init__(self, parent=None) -> None:
        super().__init__(parent=parent)
        self.setObjectName('FamilyCostEntryFormWidget')

        self._editing: Optional[DailyEntry] = None
        self._bazar_items: List[BazarItem] = []
        self.unit_editors: Dict[str, tuple] = {}

        self._create_ui()
        self._connect_signals()
        self.reset()

    def _create_ui(self) -> None:
        QtWidgets.QVBoxLayout(self)
        o = ui.Size.Margin(0.5)
        self.layout().setContentsMargins(o, o, o, o)

        self.editing_label = QtWidgets.QLabel(parent=self)
        self.editing_label.setStyleSheet(f'color: {ui.Color.Blue(qss=True)}; font-weight: bold;')
        self.layout().addWidget(self.editing_label)

        self.date_editor = QtWidgets.QDateEdit(parent=self)
        self.date_editor.setDisplayFormat('yyyy-MM-dd')
        self.date_editor.setCalendarPopup(True)
        self.layout().addWidget(self.date_editor)

        self.units_widget = QtWidgets.QWidget(parent=self)
        QtWidgets.QGridLayout(self.units_widget)
        self.units_widget.layout().setContentsMargins(0, 0, 0, 0)
        self.layout().addWidget(self.units_widget)
        self._create_unit_editors()

        row = QtWidgets.QHBoxLayout()
        self.bazar_name_editor = QtWidgets.QLineEdit(parent=self)
        self.bazar_name_editor.setPlaceholderText('Bazar item')
        row.addWidget(self.bazar_name_editor, 2)
        self.bazar_cost_editor = QtWidgets.QLineEdit(parent=self)
        self.bazar_cost_editor.setPlaceholderText('Cost')
        self.bazar_cost_editor.setValidator(QtGui.QIntValidator(parent=self))
        row.addWidget(self.bazar_cost_editor, 1)
        self.add_bazar_button = QtWidgets.QPushButton('Add', parent=self)
        row.addWidget(self.add_bazar_button)
        self.layout().addLayout(row)

        self.bazar_list = QtWidgets.QListWidget(parent=self)
        self.layout().addWidget(self.bazar_list, 1)

        self.remove_bazar_button = QtWidgets.QPushButton('Remove item', parent=self)
        self.layout().addWidget(self.remove_bazar_button)

        self.bazar_total_label = QtWidgets.QLabel(parent=self)
        self.layout().addWidget(self.bazar_total_label)

        row = QtWidgets.QHBoxLayout()
        self.cancel_button = QtWidgets.QPushButton('Cancel', parent=self)
        row.addWidget(self.cancel_button)
        row.addStretch(1)
        self.submit_button = QtWidgets.QPushButton(parent=self)
        self.submit_button.setDefault(True)
        row.addWidget(self.submit_button)
        self.layout().addLayout(row)

    def _create_unit_editors(self) -> None:
        layout = self.units_widget.layout()
        while layout.count():
            item = layout.takeAt(0)
            if item.widget():
                item.widget().deleteLater()
        self.unit_editors = {}

        layout.addWidget(QtWidgets.QLabel('Unit', parent=self.units_widget), 0, 0)
        layout.addWidget(QtWidgets.QLabel('Income (TK)', parent=self.units_widget), 0, 1)
        layout.addWidget(QtWidgets.QLabel('Cost (TK)', parent=self.units_widget), 0, 2)
        for i, unit in enumerate(lib.settings.get_section('units'), start=1):
            layout.addWidget(QtWidgets.QLabel(unit, parent=self.units_widget), i, 0)
            income = QtWidgets.QLineEdit(parent=self.units_widget)
            cost = QtWidgets.QLineEdit(parent=self.units_widget)
            for editor in (income, cost):
                editor.setPlaceholderText('0')
                editor.setValidator(QtGui.QIntValidator(parent=editor))
            layout.addWidget(income, i, 1)
            layout.addWidget(cost, i, 2)
            self.unit_editors[unit] = (income, cost)

    def _connect_signals(self) -> None:
        self.add_bazar_button.clicked.connect(self.add_bazar_item)
        self.bazar_cost_editor.returnPressed.connect(self.add_bazar_item)
        self.remove_bazar_button.clicked.connect(self.remove_bazar_item)
        self.submit_button.clicked.connect(self.submit)
        self.cancel_button.clicked.connect(self.cancel)

        signals.editRequested.connect(self.set_editing)

        @QtCore.Slot(str)
        def config_changed(section: str) -> None:
            if section == 'units':
                self._create_unit_editors()
                self.reset()

        signals.configSectionChanged.connect(config_changed)

    @property
    def editing(self) -> Optional[DailyEntry]:
        return self._editing

    @QtCore.Slot()
    def reset(self) -> None:
        """Clear the form for a new entry dated today."""
        self._editing = None
        self._bazar_items = []
        today = locale.get_local_date(_timezone())
        self.date_editor.setDate(QtCore.QDate.fromString(today, 'yyyy-MM-dd'))
        for income, cost in self.unit_editors.values():
            income.clear()
            cost.clear()
        self.bazar_name_editor.clear()
        self.bazar_cost_editor.clear()
        self._update()

    @QtCore.Slot(object)
    def set_editing(self, entry: DailyEntry) -> None:
        """Fill the form with an entry to edit."""
        self.reset()
        self._editing = entry
        self.date_editor.setDate(QtCore.QDate.fromString(entry.date, 'yyyy-MM-dd'))
        for unit, (income, cost) in self.unit_editors.items():
            v = entry.units.get(unit)
            if v is None:
                continue
            income.setText(str(v.income) if v.income else '')
            cost.setText(str(v.cost) if v.cost else '')
        self._bazar_items = [BazarItem(name=i.name, cost=i.cost, id=i.id) for i in entry.bazar_items]
        self._update()

    def _update(self) -> None:
        editing = self._editing is not None
        self.editing_label.setVisible(editing)
        self.editing_label.setText(f'Currently updating {self._editing.date}' if editing else '')
        self.cancel_button.setVisible(editing)
        self.submit_button.setText('Update Log' if editing else 'Save Daily Log')

        self.bazar_list.clear()
        for item in self._bazar_items:
            self.bazar_list.addItem(f'{item.name}: {_amount(item.cost)}')
        self.bazar_total_label.setText(f'Bazar total: {_amount(sum(i.cost for i in self._bazar_items))}')

    @QtCore.Slot()
    def add_bazar_item(self) -> None:
        name = self.bazar_name_editor.text().strip()
        cost = self.bazar_cost_editor.text().strip()
        if not name or not cost:
            return
        self._bazar_items.append(BazarItem.from_dict({'name': name, 'cost': cost}))
        self.bazar_name_editor.clear()
        self.bazar_cost_editor.clear()
        self._update()

    @QtCore.Slot()
    def remove_bazar_item(self) -> None:
        row = self.bazar_list.currentRow()
        if 0 <= row < len(self._bazar_items):
            del self._bazar_items[row]
            self._update()

    def build_entry(self) -> DailyEntry:
        units = {
            unit: {'income': income.text(), 'cost': cost.text()}
            for unit, (income, cost) in self.unit_editors.items()
        }
        return make_entry(
            self.date_editor.date().toString('yyyy-MM-dd'),
            units,
            self._bazar_items,
            unit_names=lib.settings.get_section('units'),
        )

    @QtCore.Slot()
    def submit(self) -> DailyEntry:
        from ..core.ledger import ledger

        entry = ledger.add_entry(self.build_entry(), editing=self._editing)
        self.reset()
        signals.showDashboard.emit()
        return entry

    @QtCore.Slot()
    def cancel(self) -> None:
        self.reset()
        signals.editCancelled.emit()
        signals.showHistory.emit()


class HistoryWidget(QtWidgets.QWidget):
    """Browse the entries of a month with their previous versions."""

    def __init__(self, parent=None) -> None:
        super().__init__(parent=parent)
        self.setObjectName('FamilyCostHistoryWidget')

        self._entries: List[DailyEntry] = []
        self.model = EntryModel(parent=self)

        self._create_ui()
        self._connect_signals()

    def _create_ui(self) -> None:
        QtWidgets.QVBoxLayout(self)
        o = ui.Size.Margin(0.5)
        self.layout().setContentsMargins(o, o, o, o)

        row = QtWidgets.QHBoxLayout()
        self.month_selector = MonthSelector(parent=self)
        row.addWidget(self.month_selector, 1)
        self.export_button = QtWidgets.QPushButton('Export CSV', parent=self)
        row.addWidget(self.export_button)
        self.layout().addLayout(row)

        splitter = QtWidgets.QSplitter(QtCore.Qt.Horizontal, parent=self)
        self.view = _table_view(self.model, parent=splitter)
        splitter.addWidget(self.view)

        details = QtWidgets.QWidget(parent=splitter)
        QtWidgets.QVBoxLayout(details)
        details.layout().setContentsMargins(0, 0, 0, 0)

        self.details_view = QtWidgets.QTextBrowser(parent=details)
        details.layout().addWidget(self.details_view, 2)

        details.layout().addWidget(QtWidgets.QLabel('Previous versions', parent=details))
        self.versions_list = QtWidgets.QListWidget(parent=details)
        details.layout().addWidget(self.versions_list, 1)

        row = QtWidgets.QHBoxLayout()
        self.edit_button = QtWidgets.QPushButton('Edit', parent=details)
        row.addWidget(self.edit_button)
        self.delete_button = QtWidgets.QPushButton('Delete', parent=details)
        row.addWidget(self.delete_button)
        details.layout().addLayout(row)

        splitter.addWidget(details)
        self.layout().addWidget(splitter, 1)

    def _connect_signals(self) -> None:
        signals.entriesChanged.connect(self.set_entries)
        self.month_selector.monthChanged.connect(self.refresh)
        self.view.selectionModel().currentRowChanged.connect(self.show_details)
        self.versions_list.currentRowChanged.connect(self.show_version)
        self.edit_button.clicked.connect(self.edit_current)
        self.delete_button.clicked.connect(lambda: self.delete_current())
        self.export_button.clicked.connect(self.export)

    @QtCore.Slot(list)
    def set_entries(self, entries: List[DailyEntry]) -> None:
        self._entries = list(entries)
        self.refresh()

    @QtCore.Slot()
    def refresh(self) -> None:
        self.model.set_entries(data.get_history(self._entries, self.month_selector.month()))
        self.show_details(self.view.currentIndex())

    def current_entry(self) -> Optional[DailyEntry]:
        index = self.view.currentIndex()
        if not index.isValid():
            return None
        return index.data(EntryRole)

    def trail(self) -> List[DailyEntry]:
        from ..core.ledger import ledger
        entry = self.current_entry()
        return ledger.history_trail(entry) if entry else []

    @staticmethod
    def breakdown_html(entry: DailyEntry, comparison: Optional[DailyEntry] = None) -> str:
        """Unit and bazar breakdown of an entry, with changed figures marked."""
        diff = data.compare_versions(entry, comparison) if comparison else {}
        lines = [f'<h3>{entry.date}</h3>', '<b>Unit Breakdown</b><table width="100%">']
        for name, v in entry.units.items():
            flags = diff.get(name, {})
            if not (v.income or v.cost or flags):
                continue
            income = _amount(v.income)
            cost = _amount(v.cost)
            if flags.get('income'):
                income = f'<u>{income}</u>'
            if flags.get('cost'):
                cost = f'<u>{cost}</u>'
            lines.append(f'<tr><td>{name}</td><td align="right">In {income}</td><td align="right">Out {cost}</td></tr>')
        lines.append('</table><b>Daily Bazar</b><table width="100%">')
        for item in entry.bazar_items:
            lines.append(f'<tr><td>{item.name}</td><td align="right">{_amount(item.cost)}</td></tr>')
        if not entry.bazar_items:
            lines.append('<tr><td><i>No items recorded.</i></td></tr>')
        lines.append('</table>')
        lines.append(f'<p><b>Balance {_amount(entry.available_balance)}</b></p>')
        return ''.join(lines)

    @QtCore.Slot(QtCore.QModelIndex)
    def show_details(self, index: QtCore.QModelIndex, *args) -> None:
        entry = self.current_entry()
        self.versions_list.blockSignals(True)
        self.versions_list.clear()
        self.versions_list.blockSignals(False)

        has_entry = entry is not None
        self.edit_button.setEnabled(has_entry)
        self.delete_button.setEnabled(has_entry)
        if not has_entry:
            self.details_view.clear()
            return

        self.details_view.setHtml(self.breakdown_html(entry))
        for version in self.trail():
            ts = QtCore.QDateTime.fromMSecsSinceEpoch(version.updated_at).toString('yyyy-MM-dd hh:mm')
            self.versions_list.addItem(f'{ts}  {_amount(version.available_balance)}')

    @QtCore.Slot(int)
    def show_version(self, row: int) -> None:
        entry = self.current_entry()
        trail = self.trail()
        if entry is None or not 0 <= row < len(trail):
            return
        self.details_view.setHtml(self.breakdown_html(trail[row], comparison=entry))

    @QtCore.Slot()
    def edit_current(self) -> None:
        entry = self.current_entry()
        if entry is None:
            return
        signals.editRequested.emit(entry)
        signals.showEntry.emit()

    def delete_current(self, confirm: bool = True) -> bool:
        entry = self.current_entry()
        if entry is None:
            return False

        if confirm:
            res = QtWidgets.QMessageBox.question(
                self,
                'Delete Entry',
                f'Delete the log of {entry.date}?',
                QtWidgets.QMessageBox.Yes | QtWidgets.QMessageBox.No,
            )
            if res != QtWidgets.QMessageBox.Yes:
                return False

        from ..core.ledger import ledger
        return ledger.delete_entry(entry.id)

    @QtCore.Slot()
    def export(self) -> None:
        try:
            path = data.export_csv(self._entries, self.month_selector.month())
        except ValueError as ex:
            QtWidgets.QMessageBox.information(self, 'Export', str(ex))
            return
        except OSError as ex:
            logging.error(f'CSV export failed: {ex}')
            QtWidgets.QMessageBox.warning(self, 'Export', f'Could not write the file: {ex}')
            return

        month = locale.format_month(self.month_selector.month(), lib.settings['locale'])
        QtWidgets.QMessageBox.information(self, 'Export', f'Saved {month} to {path}')
        QtGui.QDesktopServices.openUrl(QtCore.QUrl.fromLocalFile(str(path.parent)))


class SyncStatusIndicator(QtWidgets.QToolButton):
    """Show the sync state. Clicking it forces a sync."""

    labels = {
        'idle': ('Offline', ui.Color.DisabledText),
        'syncing': ('Syncing…', ui.Color.Yellow),
        'synced': ('Cloud Synced', ui.Color.Green),
        'error': ('Sync Error, retry', ui.Color.Red),
    }

    def __init__(self, parent=None) -> None:
        super().__init__(parent=parent)
        self.setObjectName('FamilyCostSyncStatusIndicator')
        self.setToolButtonStyle(QtCore.Qt.ToolButtonTextOnly)

        self._state = 'idle'
        self._connect_signals()
        self.set_state('idle')

    def _connect_signals(self) -> None:
        self.clicked.connect(signals.syncRequested)
        signals.syncStateChanged.connect(self.set_state)

    def state(self) -> str:
        return self._state

    @QtCore.Slot(str)
    def set_state(self, state: str) -> None:
        self._state = state
        text, color = self.labels.get(state, self.labels['idle'])
        self.setText(text)
        self.setStyleSheet(f'color: {color(qss=True)}; font-weight: bold;')

        from ..core.sync import sync
        self.setToolTip(sync.last_error or 'Click to sync now')


class SyncTokenDialog(QtWidgets.QDialog):
    """Edit the sync token and move the ledger between devices."""

    def __init__(self, parent=None) -> None:
        super().__init__(parent=parent)
        self.setWindowTitle('Sync Settings')

        QtWidgets.QVBoxLayout(self)

        self.layout().addWidget(QtWidgets.QLabel(
            'Devices using the same sync token share one ledger.', parent=self
        ))
        self.token_editor = QtWidgets.QLineEdit(parent=self)
        self.token_editor.setPlaceholderText(lib.settings.get_section('remote').get('key', ''))
        self.layout().addWidget(self.token_editor)

        self.layout().addWidget(QtWidgets.QLabel('Snapshot', parent=self))
        self.snapshot_editor = QtWidgets.QPlainTextEdit(parent=self)
        self.layout().addWidget(self.snapshot_editor, 1)

        row = QtWidgets.QHBoxLayout()
        self.export_button = QtWidgets.QPushButton('Export', parent=self)
        row.addWidget(self.export_button)
        self.import_button = QtWidgets.QPushButton('Import', parent=self)
        row.addWidget(self.import_button)
        self.layout().addLayout(row)

        self.buttons = QtWidgets.QDialogButtonBox(
            QtWidgets.QDialogButtonBox.Save | QtWidgets.QDialogButtonBox.Cancel, parent=self
        )
        from ..core.database import database
        self.cache_label = QtWidgets.QLabel(f'Local {database.get_state().value}.', parent=self)
        self.cache_label.setStyleSheet(f'color: {ui.Color.SecondaryText(qss=True)};')
        self.layout().addWidget(self.cache_label)

        self.layout().addWidget(self.buttons)

        from ..core.auth import auth
        user = auth.current_user()
        if user and user.sync_token:
            self.token_editor.setText(user.sync_token)

        self.buttons.accepted.connect(self.save)
        self.buttons.rejected.connect(self.reject)
        self.export_button.clicked.connect(self.export_state)
        self.import_button.clicked.connect(self.import_state)

    @QtCore.Slot()
    def save(self) -> None:
        from ..core.auth import auth
        auth.set_sync_token(self.token_editor.text())
        self.accept()

    @QtCore.Slot()
    def export_state(self) -> None:
        from ..core.database import database
        self.snapshot_editor.setPlainText(database.export_state())
        QtWidgets.QApplication.clipboard().setText(self.snapshot_editor.toPlainText())

    @QtCore.Slot()
    def import_state(self) -> bool:
        from ..core.ledger import ledger

        if not ledger.import_state(self.snapshot_editor.toPlainText()):
            QtWidgets.QMessageBox.warning(self, 'Import', 'The snapshot could not be read.')
            return False
        return True
