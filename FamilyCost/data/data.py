"""Data analytics API for the ledger.

This module turns the entry list into the monthly figures shown on the dashboard
and in the history browser, and exports a month to CSV. Only live entries, the
ones not superseded by an edit, are aggregated.
"""
import logging
import pathlib
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from statsmodels.nonparametric.smoothers_lowess import lowess

from ..core.models import DailyEntry, UnitEntry

ENTRY_DATA_COLUMNS: List[str] = [
    'id',
    'date',
    'total_income',
    'total_vehicle_cost',
    'bazar_costs',
    'available_balance',
    'updated_at',
]
UNIT_DATA_COLUMNS: List[str] = ['unit', 'income', 'cost', 'net']
TREND_DATA_COLUMNS: List[str] = ['day', 'date', 'income', 'cost', 'balance', 'loess']
CSV_HEADER: Dict[str, str] = {
    'date': 'Date',
    'total_income': 'Total Income',
    'total_vehicle_cost': 'Vehicle Cost',
    'bazar_costs': 'Bazar Cost',
    'available_balance': 'Balance',
}


def _live(entries: List[DailyEntry]) -> List[DailyEntry]:
    return [e for e in entries if not e.is_history]


def get_data(entries: List[DailyEntry], yearmonth: Optional[str] = None) -> pd.DataFrame:
    """Build a DataFrame of the live entries, optionally restricted to a month.

    Args:
        entries: The ledger entries.
        yearmonth: 'YYYY-MM' to filter by, or None for every month.

    Returns:
        pd.DataFrame: One row per entry with ENTRY_DATA_COLUMNS plus an ``entry``
        column holding the entry itself, sorted by date.
    """
    rows = [
        {
            'id': e.id,
            'date': e.date,
            'total_income': e.total_income,
            'total_vehicle_cost': e.total_vehicle_cost,
            'bazar_costs': e.bazar_costs,
            'available_balance': e.available_balance,
            'updated_at': e.updated_at,
            'entry': e,
        }
        for e in _live(entries)
        if not yearmonth or e.date.startswith(yearmonth)
    ]
    if not rows:
        return pd.DataFrame(columns=ENTRY_DATA_COLUMNS + ['entry'])

    df = pd.DataFrame(rows)
    return df.sort_values('date', kind='stable').reset_index(drop=True)


def get_month_entries(entries: List[DailyEntry], yearmonth: str) -> List[DailyEntry]:
    """Live entries of a month, oldest date first."""
    return list(get_data(entries, yearmonth)['entry'])


def get_summary(entries: List[DailyEntry], yearmonth: str, today: str) -> Dict[str, Any]:
    """Monthly totals and today's figures.

    Args:
        entries: The ledger entries.
        yearmonth: 'YYYY-MM' of the month to summarise.
        today: 'YYYY-MM-DD' of the current local date.

    Returns:
        dict: ``income``, ``vehicle_cost``, ``bazar_cost``, ``total_cost``, ``balance``
        for the month, ``today_income`` and ``today_cost`` for today, and
        ``is_current_month``. Today's figures are only meaningful for the current month.
    """
    df = get_data(entries, yearmonth)
    income = int(df['total_income'].sum())
    vehicle_cost = int(df['total_vehicle_cost'].sum())
    bazar_cost = int(df['bazar_costs'].sum())
    total_cost = vehicle_cost + bazar_cost

    today_df = get_data(entries)
    today_df = today_df[today_df['date'] == today]

    return {
        'income': income,
        'vehicle_cost': vehicle_cost,
        'bazar_cost': bazar_cost,
        'total_cost': total_cost,
        'balance': income - total_cost,
        'today_income': int(today_df['total_income'].sum()),
        'today_cost': int((today_df['total_vehicle_cost'] + today_df['bazar_costs']).sum()),
        'is_current_month': bool(today) and today.startswith(yearmonth),
    }


def _unit(entry: DailyEntry, unit: str) -> UnitEntry:
    return entry.units.get(unit) or UnitEntry()


def get_unit_stats(entries: List[DailyEntry], yearmonth: str, units: List[str]) -> pd.DataFrame:
    """Income, cost and net per unit for a month.

    Returns:
        pd.DataFrame: UNIT_DATA_COLUMNS, one row per unit in the given order.
    """
    month = get_month_entries(entries, yearmonth)
    rows = []
    for unit in units:
        income = sum(_unit(e, unit).income for e in month)
        cost = sum(_unit(e, unit).cost for e in month)
        rows.append({'unit': unit, 'income': income, 'cost': cost, 'net': income - cost})
    return pd.DataFrame(rows, columns=UNIT_DATA_COLUMNS)


def get_unit_history(
        entries: List[DailyEntry],
        yearmonth: str,
        unit: str
) -> Tuple[List[DailyEntry], Dict[str, int]]:
    """Entries of a month in which a unit had income or cost.

    Returns:
        tuple: The entries, newest date first, and the unit's ``income``, ``cost``
        and ``net`` over them.
    """
    month = get_month_entries(entries, yearmonth)
    history = [e for e in month if _unit(e, unit).income > 0 or _unit(e, unit).cost > 0]
    history.sort(key=lambda e: e.date, reverse=True)

    income = sum(_unit(e, unit).income for e in history)
    cost = sum(_unit(e, unit).cost for e in history)
    return history, {'income': income, 'cost': cost, 'net': income - cost}


def get_bazar_by_date(entries: List[DailyEntry], yearmonth: str) -> Tuple[List[Dict[str, Any]], int]:
    """Bazar spending of a month grouped by date.

    Returns:
        tuple: A list of ``{date, total, items}`` dicts, newest date first, and
        the number of bazar items in the month.
    """
    groups: Dict[str, Dict[str, Any]] = {}
    for e in get_month_entries(entries, yearmonth):
        if e.bazar_costs <= 0:
            continue
        g = groups.setdefault(e.date, {'date': e.date, 'total': 0, 'items': []})
        g['total'] += e.bazar_costs
        g['items'].extend(e.bazar_items)

    rows = sorted(groups.values(), key=lambda v: v['date'], reverse=True)
    return rows, sum(len(v['items']) for v in rows)


def get_trends(entries: List[DailyEntry], yearmonth: str, loess_fraction: float = 0.5) -> pd.DataFrame:
    """Compute daily income and cost for a month with a smoothed balance.

    Entries of the same date are summed. Cost includes bazar costs.

    Args:
        entries: The ledger entries.
        yearmonth: 'YYYY-MM'.
        loess_fraction (float): Fraction of data for LOESS smoothing (0 < loess_fraction <= 1).

    Returns:
        pd.DataFrame: TREND_DATA_COLUMNS, one row per logged day sorted by day of month.
    """
    df = get_data(entries, yearmonth)
    if df.empty:
        return pd.DataFrame(columns=TREND_DATA_COLUMNS)

    df['cost'] = df['total_vehicle_cost'] + df['bazar_costs']
    daily = (
        df.groupby('date', as_index=False)
        .agg(income=('total_income', 'sum'), cost=('cost', 'sum'))
    )
    daily['day'] = pd.to_datetime(daily['date'], format='%Y-%m-%d', errors='coerce').dt.day
    daily = daily.dropna(subset=['day'])
    daily['day'] = daily['day'].astype(int)
    daily = daily.sort_values('day', kind='stable').reset_index(drop=True)
    daily['balance'] = daily['income'] - daily['cost']

    vals = daily['balance'].astype(float).values
    if len(vals) < 3:
        daily['loess'] = vals
    else:
        # the smoothing window must span at least three days
        frac = min(max(float(loess_fraction), 3.0 / len(vals)), 1.0)
        daily['loess'] = lowess(vals, daily['day'].astype(float).values, frac=frac, return_sorted=False)

    return daily[TREND_DATA_COLUMNS]


def get_history(entries: List[DailyEntry], yearmonth: str) -> List[DailyEntry]:
    """Live entries of a month, newest date first."""
    return sorted(get_month_entries(entries, yearmonth), key=lambda e: e.date, reverse=True)


def compare_versions(entry: DailyEntry, version: DailyEntry) -> Dict[str, Dict[str, bool]]:
    """Find the units whose figures differ between two versions of an entry.

    Args:
        entry: The version being shown.
        version: The version to compare against.

    Returns:
        dict: Unit name to ``{'income': bool, 'cost': bool}`` flags, for the units
        present in both versions with at least one difference.
    """
    diff = {}
    for name, data in entry.units.items():
        other = version.units.get(name)
        if other is None:
            continue
        flags = {'income': data.income != other.income, 'cost': data.cost != other.cost}
        if any(flags.values()):
            diff[name] = flags
    return diff


def export_csv(entries: List[DailyEntry], yearmonth: str, path: Optional[str] = None) -> pathlib.Path:
    """Write the live entries of a month to a CSV file, newest date first.

    Args:
        entries: The ledger entries.
        yearmonth: 'YYYY-MM'.
        path: Output file or directory. Defaults to the export directory.

    Returns:
        pathlib.Path: The written file.

    Raises:
        ValueError: If the month has no entries.
    """
    df = get_data(entries, yearmonth)
    if df.empty:
        raise ValueError('No data to export.')

    file_name = f'Family_Cost_{yearmonth}.csv'
    if path is None:
        from ..settings import lib
        out = lib.settings.export_dir / file_name
    else:
        out = pathlib.Path(path)
        if out.is_dir():
            out = out / file_name
    out.parent.mkdir(parents=True, exist_ok=True)

    df = df.sort_values('date', ascending=False, kind='stable')
    df = df[list(CSV_HEADER.keys())].rename(columns=CSV_HEADER)
    df.to_csv(out, index=False, lineterminator='\n')
    logging.info(f'Exported {len(df)} entries to {out}')
    return out
