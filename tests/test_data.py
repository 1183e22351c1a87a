"""
Tests for FamilyCost.data.data: monthly summaries, unit and bazar breakdowns,
trends, version comparison and CSV export.
"""
import csv
import tempfile
from pathlib import Path

from FamilyCost.core.models import make_entry
from FamilyCost.data import data
from FamilyCost.settings import lib
from tests.base import BaseTestCase

UNITS = ['Car', 'Auto']


def day(date, car=(0, 0), auto=(0, 0), bazar=()):
    return make_entry(
        date,
        {'Car': {'income': car[0], 'cost': car[1]}, 'Auto': {'income': auto[0], 'cost': auto[1]}},
        [{'name': n, 'cost': c} for n, c in bazar],
    )


class DataTests(BaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.entries = [
            day('2025-03-01', car=(1000, 200), bazar=[('Rice', 300)]),
            day('2025-03-02', auto=(500, 0)),
            day('2025-03-05', car=(800, 100), auto=(0, 50), bazar=[('Fish', 400), ('Oil', 100)]),
            day('2025-04-01', car=(9999, 0)),
        ]
        superseded = day('2025-03-02', auto=(1, 1))
        superseded.is_history = True
        self.entries.append(superseded)

    def test_get_data(self):
        df = data.get_data(self.entries, '2025-03')
        self.assertEqual(list(df['date']), ['2025-03-01', '2025-03-02', '2025-03-05'])
        self.assertIn('entry', df.columns)
        self.assertEqual(len(data.get_data(self.entries)), 4)
        self.assertTrue(data.get_data([], '2025-03').empty)

    def test_summary(self):
        s = data.get_summary(self.entries, '2025-03', '2025-03-05')
        self.assertEqual(s['income'], 2300)
        self.assertEqual(s['vehicle_cost'], 350)
        self.assertEqual(s['bazar_cost'], 800)
        self.assertEqual(s['total_cost'], 1150)
        self.assertEqual(s['balance'], 1150)
        self.assertEqual(s['today_income'], 800)
        self.assertEqual(s['today_cost'], 650)
        self.assertTrue(s['is_current_month'])

    def test_summary_other_month(self):
        s = data.get_summary(self.entries, '2025-03', '2025-04-01')
        self.assertFalse(s['is_current_month'])

    def test_summary_empty_month(self):
        s = data.get_summary(self.entries, '2024-01', '2025-03-05')
        self.assertEqual(s['income'], 0)
        self.assertEqual(s['balance'], 0)

    def test_unit_stats(self):
        df = data.get_unit_stats(self.entries, '2025-03', UNITS)
        self.assertEqual(list(df['unit']), UNITS)
        car = df.iloc[0]
        self.assertEqual((car['income'], car['cost'], car['net']), (1800, 300, 1500))
        auto = df.iloc[1]
        self.assertEqual((auto['income'], auto['cost'], auto['net']), (500, 50, 450))

    def test_unit_stats_unknown_unit(self):
        df = data.get_unit_stats(self.entries, '2025-03', ['Boat'])
        self.assertEqual(df.iloc[0]['net'], 0)

    def test_unit_history(self):
        history, summary = data.get_unit_history(self.entries, '2025-03', 'Auto')
        self.assertEqual([e.date for e in history], ['2025-03-05', '2025-03-02'])
        self.assertEqual(summary, {'income': 500, 'cost': 50, 'net': 450})

    def test_bazar_by_date(self):
        rows, count = data.get_bazar_by_date(self.entries, '2025-03')
        self.assertEqual([r['date'] for r in rows], ['2025-03-05', '2025-03-01'])
        self.assertEqual(rows[0]['total'], 500)
        self.assertEqual([i.name for i in rows[0]['items']], ['Fish', 'Oil'])
        self.assertEqual(count, 3)

    def test_trends(self):
        df = data.get_trends(self.entries, '2025-03')
        self.assertEqual(list(df.columns), data.TREND_DATA_COLUMNS)
        self.assertEqual(list(df['day']), [1, 2, 5])
        self.assertEqual(list(df['balance']), [500, 500, 150])
        self.assertEqual(len(df['loess'].dropna()), 3)

    def test_trends_few_days(self):
        df = data.get_trends(self.entries, '2025-04')
        self.assertEqual(list(df['loess']), [9999.0])
        self.assertTrue(data.get_trends(self.entries, '2024-01').empty)

    def test_trends_sum_same_day(self):
        entries = [day('2025-03-01', car=(100, 0)), day('2025-03-01', auto=(50, 10))]
        df = data.get_trends(entries, '2025-03')
        self.assertEqual(len(df), 1)
        self.assertEqual(df.iloc[0]['income'], 150)
        self.assertEqual(df.iloc[0]['cost'], 10)

    def test_history(self):
        history = data.get_history(self.entries, '2025-03')
        self.assertEqual([e.date for e in history], ['2025-03-05', '2025-03-02', '2025-03-01'])
        self.assertTrue(all(not e.is_history for e in history))

    def test_compare_versions(self):
        a = day('2025-03-01', car=(100, 10), auto=(5, 5))
        b = day('2025-03-01', car=(100, 20), auto=(5, 5))
        self.assertEqual(data.compare_versions(a, b), {'Car': {'income': False, 'cost': True}})
        self.assertEqual(data.compare_versions(a, a), {})

    def test_export_csv(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = data.export_csv(self.entries, '2025-03', tmp)
            self.assertEqual(path, Path(tmp) / 'Family_Cost_2025-03.csv')

            with path.open('r', encoding='utf-8', newline='') as f:
                rows = list(csv.reader(f))

        self.assertEqual(rows[0], ['Date', 'Total Income', 'Vehicle Cost', 'Bazar Cost', 'Balance'])
        self.assertEqual([r[0] for r in rows[1:]], ['2025-03-05', '2025-03-02', '2025-03-01'])
        self.assertEqual(rows[1], ['2025-03-05', '800', '150', '500', '150'])

    def test_export_csv_default_dir(self):
        path = data.export_csv(self.entries, '2025-04')
        self.assertEqual(path.parent, lib.settings.export_dir)
        self.assertTrue(path.exists())
        path.unlink()

    def test_export_csv_empty(self):
        with self.assertRaises(ValueError):
            data.export_csv(self.entries, '2024-01')
