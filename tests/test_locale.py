"""Tests for FamilyCost.settings.locale."""
import re
import unittest

from FamilyCost.settings import locale


class LocaleTests(unittest.TestCase):
    def test_format_amount(self):
        self.assertEqual(locale.format_amount(1234), 'TK 1,234')
        self.assertEqual(locale.format_amount(0), 'TK 0')
        self.assertEqual(locale.format_amount(1234.6), 'TK 1,235')
        self.assertEqual(locale.format_amount(None), 'TK 0')
        self.assertIn('500', locale.format_amount(-500))

    def test_format_amount_grouping_follows_locale(self):
        self.assertEqual(locale.format_amount(1234567, 'de_DE'), 'TK 1.234.567')
        self.assertEqual(locale.format_amount(1234, 'not a locale'), 'TK 1,234')

    def test_local_date(self):
        self.assertRegex(locale.get_local_date('Asia/Dhaka'), r'^\d{4}-\d{2}-\d{2}$')
        self.assertEqual(locale.get_local_month('Asia/Dhaka'), locale.get_local_date('Asia/Dhaka')[:7])

    def test_unknown_timezone_falls_back(self):
        self.assertEqual(locale.get_local_date('Nowhere/City'), locale.get_local_date(locale.DEFAULT_TIMEZONE))

    def test_currency(self):
        self.assertEqual(locale.get_currency_from_locale('bn_BD'), 'BDT')
        self.assertEqual(locale.get_currency_from_locale('en_US'), 'USD')
        self.assertEqual(locale.get_currency_from_locale('en'), 'BDT')
        self.assertTrue(re.search(r'12\.50', locale.format_currency_value(12.5, 'en_US')))

    def test_format_month(self):
        self.assertEqual(locale.format_month('2025-03'), 'March 2025')
        self.assertEqual(locale.format_month('bad'), 'bad')


if __name__ == '__main__':
    unittest.main()
