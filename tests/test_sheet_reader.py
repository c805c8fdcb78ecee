"""
Spreadsheet reader tests (mocked HTTP session).
Covers CSV and gviz JSON parsing, header synonyms, positional fallback
and the error mapping.
"""
import json
import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock

import requests

# Ensure src/ is on path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / 'src'))

from order_sync.errors import AccessDenied, EmptySource, FormatError, SourceUnavailable
from order_sync.sheet_reader import SpreadsheetReader, map_headers


class FakeResponse:
    def __init__(self, text='', status_code=200, content_type='text/csv'):
        self.text = text
        self.status_code = status_code
        self.headers = {'Content-Type': content_type}


def _reader(response=None, error=None, export_format='csv'):
    session = MagicMock()
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value = response
    return SpreadsheetReader(session=session, export_format=export_format, timeout=5,
                             base_url='https://docs.google.com/spreadsheets/d'), session


def _gviz(payload):
    return ("/*O_o*/\ngoogle.visualization.Query.setResponse("
            + json.dumps(payload) + ");")


CSV_BODY = (
    'Order Number,Full Name,Phone,Address,City,Product,SKU,Qty,Price\n'
    '1001,Rana Haddad,03 123 456,"Hamra, Bliss St",Beirut,Mug,ABC,2,12.5\n'
    ',,,,,,,,\n'
    '1002,Karim Aoun,70111222,Jounieh Rd,Jounieh,Cap,XYZ,1,8\n'
)


class TestHeaderMapping(unittest.TestCase):

    def test_synonyms(self):
        mapping = map_headers(['OrderID', 'Customer Name', 'Mobile', 'SKU', 'Quantity', 'Unit Price'])
        self.assertEqual(mapping, {
            0: 'order_id', 1: 'customer_name', 2: 'phone',
            3: 'sku', 4: 'quantity', 5: 'unit_price',
        })

    def test_parenthetical_and_case(self):
        mapping = map_headers(['ORDER ID (A)', 'name (B)'])
        self.assertEqual(mapping[0], 'order_id')
        self.assertEqual(mapping[1], 'customer_name')

    def test_containment_prefers_longest_synonym(self):
        mapping = map_headers(['Customer Phone Number', 'Product Name', 'Total Amount'])
        self.assertEqual(mapping[0], 'phone')
        self.assertEqual(mapping[1], 'product_name')
        self.assertEqual(mapping[2], 'total_amount')

    def test_product_sku_header_maps_to_sku(self):
        mapping = map_headers(['Order ID', 'Customer Name', 'Phone', 'Product SKU', 'Quantity', 'Price'])
        self.assertEqual(mapping[3], 'sku')
        self.assertNotIn('product_name', mapping.values())

    def test_item_sku_next_to_product_description(self):
        mapping = map_headers(['Item SKU', 'Product Description', 'Client Name', 'Mobile'])
        self.assertEqual(mapping, {0: 'sku', 1: 'product_name', 2: 'customer_name', 3: 'phone'})

    def test_column_claimed_once(self):
        mapping = map_headers(['Phone', 'Phone'])
        self.assertEqual(list(mapping.values()), ['phone'])


class TestSpreadsheetReaderCSV(unittest.TestCase):

    def test_reads_rows_by_header(self):
        reader, session = _reader(FakeResponse(CSV_BODY))
        snapshot = reader.read('abc123', 'Orders')

        self.assertEqual(len(snapshot), 2)
        rows = list(snapshot)
        self.assertEqual(rows[0].row_index, 1)
        self.assertEqual(rows[0].get('order_id'), '1001')
        self.assertEqual(rows[0].get('address'), 'Hamra, Bliss St')
        self.assertEqual(rows[1].get('sku'), 'XYZ')
        # blank row 2 is dropped but keeps its slot
        self.assertEqual(rows[1].row_index, 3)
        self.assertEqual(rows[1].get('quantity'), '1')

        url = session.get.call_args[0][0]
        self.assertIn('/abc123/gviz/tq?tqx=out:csv&sheet=Orders', url)
        self.assertEqual(session.get.call_args[1]['timeout'], 5)

    def test_snapshot_is_restartable(self):
        reader, _ = _reader(FakeResponse(CSV_BODY))
        snapshot = reader.read('abc123', 'Orders')
        self.assertEqual([r.get('order_id') for r in snapshot], [r.get('order_id') for r in snapshot])

    def test_sheet_name_is_url_encoded(self):
        reader, _ = _reader()
        self.assertIn('sheet=Form%20Responses%201', reader.export_url('abc', 'Form Responses 1'))

    def test_positional_fallback(self):
        body = 'a,b,c,d,e,f,g,h,i,j\n1001,Rana,70123456,Hamra,Beirut,Mug,ABC,2,12.5,25\n'
        reader, _ = _reader(FakeResponse(body))
        row = next(iter(reader.read('abc', 'Orders')))
        self.assertEqual(row.get('order_id'), '1001')
        self.assertEqual(row.get('sku'), 'ABC')
        self.assertEqual(row.get('total_amount'), '25')

    def test_header_only_is_empty_source(self):
        reader, _ = _reader(FakeResponse('Order ID,Name,Phone,SKU\n'))
        with self.assertRaises(EmptySource):
            reader.read('abc', 'Orders')

    def test_blank_body_is_format_error(self):
        reader, _ = _reader(FakeResponse(''))
        with self.assertRaises(FormatError):
            reader.read('abc', 'Orders')


class TestSpreadsheetReaderGviz(unittest.TestCase):

    def test_json_body_with_labels(self):
        payload = {
            'status': 'ok',
            'table': {
                'cols': [{'label': 'Order ID'}, {'label': 'Name'}, {'label': 'Phone'},
                         {'label': 'SKU'}, {'label': 'Price'}],
                'rows': [{'c': [{'v': 1001.0, 'f': '1,001'}, {'v': 'Rana'}, {'v': '70123456'},
                                {'v': 'ABC'}, {'v': 12.5, 'f': '12.50'}]}],
            },
        }
        reader, _ = _reader(FakeResponse(_gviz(payload), content_type='application/json'),
                            export_format='json')
        row = next(iter(reader.read('abc', 'Orders')))
        self.assertEqual(row.get('order_id'), '1001')
        self.assertEqual(row.get('unit_price'), '12.5')
        self.assertEqual(row.get('customer_name'), 'Rana')

    def test_json_body_without_labels(self):
        payload = {
            'table': {
                'cols': [{'label': ''}, {'label': ''}, {'label': ''}],
                'rows': [
                    {'c': [{'v': 'Order ID'}, {'v': 'Name'}, {'v': 'SKU'}]},
                    {'c': [{'v': 'A-7'}, None, {'v': 'ABC'}]},
                ],
            },
        }
        reader, _ = _reader(FakeResponse(_gviz(payload)))
        row = next(iter(reader.read('abc', 'Orders')))
        self.assertEqual(row.get('order_id'), 'A-7')
        self.assertEqual(row.get('customer_name'), '')

    def test_gviz_access_denied(self):
        payload = {'status': 'error', 'errors': [{'reason': 'access_denied', 'message': 'no'}]}
        reader, _ = _reader(FakeResponse(_gviz(payload)))
        with self.assertRaises(AccessDenied):
            reader.read('abc', 'Orders')

    def test_broken_json_is_format_error(self):
        reader, _ = _reader(FakeResponse('google.visualization.Query.setResponse({"table": );'))
        with self.assertRaises(FormatError):
            reader.read('abc', 'Orders')


class TestSpreadsheetReaderErrors(unittest.TestCase):

    def test_network_error(self):
        reader, _ = _reader(error=requests.ConnectionError('connection refused'))
        with self.assertRaises(SourceUnavailable):
            reader.read('abc', 'Orders')

    def test_timeout(self):
        reader, _ = _reader(error=requests.Timeout('slow'))
        with self.assertRaises(SourceUnavailable):
            reader.read('abc', 'Orders')

    def test_forbidden(self):
        reader, _ = _reader(FakeResponse('', status_code=403))
        with self.assertRaises(AccessDenied) as ctx:
            reader.read('abc', 'Orders')
        self.assertEqual(ctx.exception.status_code, 403)

    def test_not_found(self):
        reader, _ = _reader(FakeResponse('', status_code=404))
        with self.assertRaises(SourceUnavailable):
            reader.read('abc', 'Orders')

    def test_server_error(self):
        reader, _ = _reader(FakeResponse('', status_code=503))
        with self.assertRaises(SourceUnavailable):
            reader.read('abc', 'Orders')

    def test_sign_in_page(self):
        reader, _ = _reader(FakeResponse('<!DOCTYPE html><html>Sign in</html>', content_type='text/html'))
        with self.assertRaises(AccessDenied):
            reader.read('abc', 'Orders')


if __name__ == '__main__':
    unittest.main()
