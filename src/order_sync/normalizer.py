"""
Order Normalizer
Normalizes raw spreadsheet rows (localized digits, phone formats, prices)
into NormalizedOrder records
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

import config

from .models import NormalizationFailure, NormalizedOrder, SheetRow
from .sync_config import REQUIRED_FIELDS

# Arabic-Indic (U+0660..) and Extended Arabic-Indic / Persian (U+06F0..) digits
_DIGIT_TABLE = {ord(ch): str(i) for i, ch in enumerate('٠١٢٣٤٥٦٧٨٩')}
_DIGIT_TABLE.update({ord(ch): str(i) for i, ch in enumerate('۰۱۲۳۴۵۶۷۸۹')})
_DIGIT_TABLE[ord('٫')] = '.'  # Arabic decimal separator
_DIGIT_TABLE[ord('٬')] = ','  # Arabic thousands separator

_NON_DIGITS = re.compile(r'\D')
_NUMBER_CHARS = re.compile(r'[^0-9.,\-]')
_THOUSANDS_COMMA = re.compile(r'^-?\d{1,3}(,\d{3})+$')
_THOUSANDS_DOT = re.compile(r'^-?\d{1,3}(\.\d{3}){2,}$')


def to_latin_digits(value) -> str:
    """'٠١٢٣' -> '0123'"""
    if value is None:
        return ''
    return str(value).translate(_DIGIT_TABLE)


def canonical_phone(raw, country_code: str = None) -> str:
    """
    Canonical international form used as the duplicate-matching key.

    Args:
        raw: Phone as typed in the sheet (e.g. "0096170123456", "03 123 456", "'+961 70 123456")
        country_code: Country code without '+' (default DEFAULT_COUNTRY_CODE)

    Returns:
        '+<country code><subscriber digits>', or '' when no digits remain
    """
    cc = country_code or config.DEFAULT_COUNTRY_CODE
    text = to_latin_digits(raw).replace("'", '').strip()
    digits = _NON_DIGITS.sub('', text)
    if not digits:
        return ''

    # '+' or '00' already carries a country code, domestic or foreign
    if text.startswith('+'):
        return '+' + digits
    if digits.startswith('00'):
        return '+' + digits[2:]
    if digits.startswith('0'):
        digits = digits[1:]
    if not digits.startswith(cc):
        digits = cc + digits
    return '+' + digits


def parse_decimal(raw) -> Optional[Decimal]:
    """
    Parse a localized number.

    - '1,500' / '1.500.000' -> thousands separators
    - '12,5' -> decimal comma
    - '1.234,56' / '1,234.56' -> last separator is the decimal point
    - currency symbols and letters are ignored ('$25', '25 USD')

    Returns:
        Decimal, or None when nothing numeric is left
    """
    text = _NUMBER_CHARS.sub('', to_latin_digits(raw).strip())
    if not text or not any(ch.isdigit() for ch in text):
        return None

    if ',' in text and '.' in text:
        if text.rfind(',') > text.rfind('.'):
            text = text.replace('.', '').replace(',', '.')
        else:
            text = text.replace(',', '')
    elif ',' in text:
        if _THOUSANDS_COMMA.match(text):
            text = text.replace(',', '')
        else:
            text = text.replace(',', '.')
    elif _THOUSANDS_DOT.match(text):
        text = text.replace('.', '')

    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def parse_quantity(raw) -> int:
    """Quantity never rejects a row: missing, unparseable or < 1 becomes 1."""
    value = parse_decimal(raw)
    if value is None:
        return 1
    quantity = int(value)
    return quantity if quantity >= 1 else 1


class OrderNormalizer:
    """Turns untrusted SheetRows into NormalizedOrders or NormalizationFailures"""

    def __init__(self, country_code: str = None):
        self.country_code = country_code or config.DEFAULT_COUNTRY_CODE

    def normalize(self, row: SheetRow) -> Union[NormalizedOrder, NormalizationFailure]:
        """
        Normalize a single row. Never raises for bad content.

        Args:
            row: Raw row from the SpreadsheetReader

        Returns:
            NormalizedOrder, or NormalizationFailure naming the missing fields
        """
        fields = {
            'order_id': self._normalize_order_id(row.get('order_id')),
            'customer_name': self._clean_text(row.get('customer_name')),
            'phone': canonical_phone(row.get('phone'), self.country_code),
            'sku': self._clean_text(row.get('sku')),
        }

        missing = [name for name in REQUIRED_FIELDS if not fields[name]]
        if missing:
            return NormalizationFailure(
                row_index=row.row_index,
                reason=f"missing required field(s): {', '.join(missing)}",
                original_row=row,
                missing_fields=missing,
            )

        price = parse_decimal(row.get('unit_price'))
        if price is not None and price < 0:
            return NormalizationFailure(
                row_index=row.row_index,
                reason=f"negative unit price: {row.get('unit_price')}",
                original_row=row,
            )

        # Source 'total_amount' is deliberately ignored; total is derived
        return NormalizedOrder(
            row_index=row.row_index,
            external_order_id=fields['order_id'],
            customer_name=fields['customer_name'],
            phone=fields['phone'],
            sku=fields['sku'],
            address=self._clean_text(row.get('address')),
            city=self._clean_text(row.get('city')),
            product_name=self._clean_text(row.get('product_name')),
            quantity=parse_quantity(row.get('quantity')),
            unit_price=price if price is not None else Decimal('0'),
            has_source_price=price is not None,
        )

    @staticmethod
    def _normalize_order_id(raw) -> str:
        order_id = to_latin_digits(raw).strip()
        # Numeric ids exported as floats ('1001.0')
        if re.fullmatch(r'\d+\.0+', order_id):
            order_id = order_id.split('.')[0]
        return order_id

    @staticmethod
    def _clean_text(raw) -> str:
        return ' '.join(str(raw or '').split())
