"""
Sync Engine Configuration

Constants for header recognition and status codes.
Deployment settings (timeouts, window, concurrency) live in src/config.py.
"""

# Logical columns in canonical (positional fallback) order: A..J
CANONICAL_COLUMNS = [
    'order_id',
    'customer_name',
    'phone',
    'address',
    'city',
    'product_name',
    'sku',
    'quantity',
    'unit_price',
    'total_amount',
]

# Header synonyms per logical column, compared case-insensitively
HEADER_SYNONYMS = {
    'order_id': ['order id', 'orderid', 'order number', 'ordernumber', 'order no', 'order #'],
    'customer_name': ['customer name', 'full name', 'fullname', 'client name', 'name'],
    'phone': ['phone number', 'phone', 'mobile', 'contact', 'whatsapp'],
    'address': ['shipping address', 'address'],
    'city': ['city', 'town', 'location'],
    'product_name': ['product name', 'item name', 'product', 'item'],
    'sku': ['sku', 'product code', 'item code'],
    'quantity': ['quantity', 'total quantity', 'qty'],
    'unit_price': ['unit price', 'price', 'total charge', 'amount'],
    'total_amount': ['total amount', 'order total', 'total'],
}

# Claimed first in the containment pass so 'Product SKU' maps to sku, not product_name
IDENTIFIER_COLUMNS = ['order_id', 'sku', 'phone']

# Positional mapping is used when fewer headers than this are recognised
MIN_RECOGNISED_HEADERS = 2

# Required after normalization; a row missing any of these is invalid
REQUIRED_FIELDS = ['order_id', 'customer_name', 'phone', 'sku']

# gviz JSON responses are wrapped in a JavaScript callback
GVIZ_RESPONSE_PREFIX = 'google.visualization.Query.setResponse('

INTEGRATION_ID_PREFIX = 'INT'
ORDER_ID_PREFIX = 'ORD'
