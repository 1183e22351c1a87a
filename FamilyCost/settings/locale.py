"""
Module for local dates and for formatting amounts using Babel.

"""
import datetime
import logging
from typing import Optional

from babel import Locale, numbers
from babel.core import UnknownLocaleError
from babel.dates import format_date, get_timezone

DEFAULT_TIMEZONE: str = 'Asia/Dhaka'
DEFAULT_LOCALE: str = 'en_US'
CURRENCY_PREFIX: str = 'TK'

CURRENCY_MAP: dict[str, str] = {
    'BD': 'BDT',
    'US': 'USD',
    'GB': 'GBP',
    'IN': 'INR',
    'DE': 'EUR',
    'FR': 'EUR',
}


def _now(timezone: Optional[str]) -> datetime.datetime:
    try:
        tz = get_timezone(timezone or DEFAULT_TIMEZONE)
    except LookupError:
        logging.warning(f'Unknown timezone "{timezone}", using {DEFAULT_TIMEZONE}.')
        tz = get_timezone(DEFAULT_TIMEZONE)
    return datetime.datetime.now(tz)


def get_local_date(timezone: Optional[str] = DEFAULT_TIMEZONE) -> str:
    """
    Today's date in the given timezone.

    Args:
        timezone (str): IANA timezone name. Defaults to 'Asia/Dhaka'.

    Returns:
        str: The date as 'YYYY-MM-DD'.
    """
    return _now(timezone).strftime('%Y-%m-%d')


def get_local_month(timezone: Optional[str] = DEFAULT_TIMEZONE) -> str:
    """
    The current month in the given timezone, as 'YYYY-MM'.
    """
    return get_local_date(timezone)[:7]


def _parse_locale(locale: str) -> Locale:
    try:
        return Locale.parse(locale or DEFAULT_LOCALE)
    except (ValueError, UnknownLocaleError):
        logging.warning(f'Unknown locale "{locale}", using {DEFAULT_LOCALE}.')
        return Locale.parse(DEFAULT_LOCALE)


def get_currency_from_locale(locale: str) -> str:
    """
    Retrieve the currency code based on the locale's territory.

    Args:
        locale (str): Locale string, e.g. 'bn_BD'.

    Returns:
        str: Currency code such as 'BDT'. Defaults to 'BDT' if the territory is unknown.
    """
    parts = (locale or '').split('_')
    if len(parts) < 2:
        return 'BDT'
    return CURRENCY_MAP.get(parts[1], 'BDT')


def format_amount(value: float, locale: str = DEFAULT_LOCALE) -> str:
    """
    Format an amount as a whole number with grouping, prefixed with the taka sign.

    Args:
        value (float): The amount.
        locale (str): Locale string used for digit grouping, e.g. 'en_US'.

    Returns:
        str: The formatted amount, e.g. 'TK 1,234'.
    """
    locale_obj = _parse_locale(locale)
    v = numbers.format_decimal(round(value or 0), format='#,##0', locale=locale_obj)
    return f'{CURRENCY_PREFIX} {v}'


def format_currency_value(value: float, locale: str = DEFAULT_LOCALE) -> str:
    """
    Format a float as a currency string based on the locale's currency.

    Args:
        value (float): The numeric value to be formatted.
        locale (str): Locale string, e.g. 'en_US'.

    Returns:
        str: The formatted currency string.
    """
    locale_obj = _parse_locale(locale)
    currency_code = get_currency_from_locale(str(locale_obj))
    return numbers.format_currency(value, currency=currency_code, locale=locale_obj)


def format_month(yearmonth: str, locale: str = DEFAULT_LOCALE) -> str:
    """Format a 'YYYY-MM' string as a long month name, e.g. 'March 2025'."""
    try:
        d = datetime.datetime.strptime(yearmonth, '%Y-%m').date()
    except (TypeError, ValueError):
        return yearmonth or ''
    return format_date(d, format='MMMM yyyy', locale=_parse_locale(locale))
