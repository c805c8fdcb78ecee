"""
Spreadsheet Reader
==================

Fetches a publicly shared Google Sheet tab through the gviz export
endpoint and turns it into SheetRow objects.

- Transport: CSV (tqx=out:csv) or the gviz JSON table (tqx=out:json).
  Either body is accepted regardless of which one was requested.
- First row is the header. Headers are mapped to logical columns via
  HEADER_SYNONYMS; with too few recognised headers the canonical A..J
  positional layout is used instead.
- No credentials: the sheet must be shared "Anyone with the link can view".
"""
from __future__ import annotations

import csv
import io
import json
import re
from typing import Dict, Iterator, List, Optional
from urllib.parse import quote

import requests

import config

from .errors import AccessDenied, EmptySource, FormatError, SourceUnavailable
from .models import SheetRow
from .sync_config import (
    CANONICAL_COLUMNS,
    GVIZ_RESPONSE_PREFIX,
    HEADER_SYNONYMS,
    IDENTIFIER_COLUMNS,
    MIN_RECOGNISED_HEADERS,
)

_PARENTHETICAL = re.compile(r'\([^)]*\)')
_WHITESPACE = re.compile(r'\s+')


def _clean_header(header: str) -> str:
    """'Order ID (A)' -> 'order id'"""
    text = _PARENTHETICAL.sub(' ', str(header or ''))
    text = text.replace('_', ' ').replace(':', ' ')
    return _WHITESPACE.sub(' ', text).strip().lower()


def map_headers(headers: List[str]) -> Dict[int, str]:
    """
    Map header cells to logical columns.

    Exact synonym matches are assigned first; remaining headers are then
    matched by containment. Identifier columns (order id, SKU, phone) are
    tried before descriptive ones, then the longest synonym wins. Each logical
    column is claimed at most once (leftmost header wins).

    Args:
        headers: Header row cells

    Returns:
        Dict of column index -> logical column name
    """
    cleaned = [_clean_header(h) for h in headers]
    mapping: Dict[int, str] = {}
    claimed = set()

    # Pass 1: exact matches
    for idx, header in enumerate(cleaned):
        if not header:
            continue
        for column, synonyms in HEADER_SYNONYMS.items():
            if column not in claimed and header in synonyms:
                mapping[idx] = column
                claimed.add(column)
                break

    # Pass 2: containment, identifier columns first, then longest synonym
    candidates = sorted(
        ((syn, column) for column, synonyms in HEADER_SYNONYMS.items() for syn in synonyms),
        key=lambda pair: (pair[1] not in IDENTIFIER_COLUMNS, -len(pair[0])),
    )
    for idx, header in enumerate(cleaned):
        if idx in mapping or not header:
            continue
        for synonym, column in candidates:
            if column not in claimed and synonym in header:
                mapping[idx] = column
                claimed.add(column)
                break

    return mapping


def positional_mapping(width: int) -> Dict[int, str]:
    return {idx: column for idx, column in enumerate(CANONICAL_COLUMNS[:width])}


class SheetSnapshot:
    """
    One fetched copy of a sheet tab.

    Finite and restartable: iterating twice yields the same rows, built
    lazily from the parsed table. Fetch again for a fresh snapshot.
    """

    def __init__(self, header: List[str], data_rows: List[List[str]], column_map: Dict[int, str],
                 source_id: str = '', sheet_name: str = '', row_indices: Optional[List[int]] = None):
        self.header = header
        self.column_map = column_map
        self.source_id = source_id
        self.sheet_name = sheet_name
        self._data_rows = data_rows
        # Position below the header in the sheet; blank rows keep their slot
        self._row_indices = row_indices or list(range(1, len(data_rows) + 1))

    def __len__(self) -> int:
        return len(self._data_rows)

    def __iter__(self) -> Iterator[SheetRow]:
        for idx, cells in zip(self._row_indices, self._data_rows):
            values = {}
            for col_idx, column in self.column_map.items():
                if col_idx < len(cells):
                    values[column] = cells[col_idx]
            yield SheetRow(row_index=idx, values=values)

    @property
    def mapped_columns(self) -> List[str]:
        return [self.column_map[idx] for idx in sorted(self.column_map)]


class SpreadsheetReader:
    """Reads public spreadsheet exports over HTTP."""

    def __init__(self, session: Optional[requests.Session] = None, export_format: str = None,
                 timeout: float = None, base_url: str = None):
        self.session = session or requests.Session()
        self.export_format = (export_format or config.SHEET_EXPORT_FORMAT).lower()
        self.timeout = timeout or config.SHEET_FETCH_TIMEOUT_SECONDS
        self.base_url = (base_url or config.SHEET_EXPORT_BASE_URL).rstrip('/')

    def export_url(self, source_id: str, sheet_name: str) -> str:
        return (
            f"{self.base_url}/{quote(source_id, safe='')}/gviz/tq"
            f"?tqx=out:{self.export_format}&sheet={quote(sheet_name, safe='')}"
        )

    # ─────────────────────────────────────────────────────────────
    # Public methods
    # ─────────────────────────────────────────────────────────────

    def read(self, source_id: str, sheet_name: str) -> SheetSnapshot:
        """
        Fetch and parse one sheet tab.

        Raises:
            SourceUnavailable: network error, 404 or server error
            AccessDenied: sheet is not publicly readable
            EmptySource: no data rows below the header
            FormatError: body is not a CSV or gviz table
        """
        body = self._fetch(source_id, sheet_name)
        table = self._parse_table(body, source_id, sheet_name)

        filled = [(pos, row) for pos, row in enumerate(table) if any(str(cell).strip() for cell in row)]
        if not filled:
            raise FormatError('No header row found in sheet', source_id, sheet_name)

        header_pos, header = filled[0]
        data = filled[1:]
        if not data:
            raise EmptySource(f"Sheet '{sheet_name}' has no data rows", source_id, sheet_name)

        column_map = map_headers(header)
        if len(column_map) < MIN_RECOGNISED_HEADERS:
            width = max(len(row) for _, row in filled)
            column_map = positional_mapping(width)

        return SheetSnapshot(
            header,
            [row for _, row in data],
            column_map,
            source_id,
            sheet_name,
            row_indices=[pos - header_pos for pos, _ in data],
        )

    # ─────────────────────────────────────────────────────────────
    # Internal helpers
    # ─────────────────────────────────────────────────────────────

    def _fetch(self, source_id: str, sheet_name: str) -> str:
        url = self.export_url(source_id, sheet_name)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise SourceUnavailable(f"Network error reading spreadsheet: {e}", source_id, sheet_name) from e

        status = response.status_code
        if status in (401, 403):
            raise AccessDenied(
                'Access denied. Make sure the spreadsheet is shared as "Anyone with the link can view".',
                source_id, sheet_name, status,
            )
        if status == 404:
            raise SourceUnavailable(
                'Spreadsheet not found. Please check the spreadsheet ID.', source_id, sheet_name, status,
            )
        if status >= 400:
            raise SourceUnavailable(
                f"Spreadsheet export returned HTTP {status}", source_id, sheet_name, status,
            )

        content_type = response.headers.get('Content-Type', '').lower()
        body = response.text or ''
        if 'text/html' in content_type or body.lstrip()[:15].lower().startswith(('<!doctype html', '<html')):
            # Private sheets answer 200 with a Google sign-in page
            raise AccessDenied(
                'Spreadsheet returned a sign-in page; it is not publicly readable.',
                source_id, sheet_name, status,
            )
        return body

    def _parse_table(self, body: str, source_id: str, sheet_name: str) -> List[List[str]]:
        if GVIZ_RESPONSE_PREFIX in body or body.lstrip().startswith(('/*O_o*/', '{')):
            return self._parse_gviz_json(body, source_id, sheet_name)
        return self._parse_csv(body, source_id, sheet_name)

    @staticmethod
    def _parse_csv(body: str, source_id: str, sheet_name: str) -> List[List[str]]:
        try:
            return [[cell.strip() for cell in row] for row in csv.reader(io.StringIO(body))]
        except csv.Error as e:
            raise FormatError(f"Could not parse CSV export: {e}", source_id, sheet_name) from e

    @staticmethod
    def _parse_gviz_json(body: str, source_id: str, sheet_name: str) -> List[List[str]]:
        start = body.find('{')
        end = body.rfind('}')
        if start == -1 or end <= start:
            raise FormatError('gviz response contains no JSON object', source_id, sheet_name)
        try:
            payload = json.loads(body[start:end + 1])
        except json.JSONDecodeError as e:
            raise FormatError(f"Could not parse gviz JSON: {e}", source_id, sheet_name) from e

        if payload.get('status') == 'error':
            errors = payload.get('errors') or [{}]
            reason = errors[0].get('reason', '')
            message = errors[0].get('detailed_message') or errors[0].get('message') or reason
            if reason in ('access_denied', 'user_not_authenticated'):
                raise AccessDenied(f"Access denied: {message}", source_id, sheet_name)
            raise FormatError(f"gviz error: {message}", source_id, sheet_name)

        table = payload.get('table')
        if not isinstance(table, dict) or 'rows' not in table:
            raise FormatError('Invalid sheet format: no table in gviz response', source_id, sheet_name)

        rows: List[List[str]] = []
        labels = [col.get('label', '') for col in table.get('cols', [])]
        if any(label.strip() for label in labels):
            # gviz promoted the header row into column labels
            rows.append(labels)
        for row in table.get('rows') or []:
            rows.append([_gviz_cell(cell) for cell in (row or {}).get('c') or []])
        return rows


def _gviz_cell(cell) -> str:
    if not cell:
        return ''
    value = cell.get('v')
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # raw numbers avoid locale grouping in the formatted value
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    if cell.get('f') is not None:
        return str(cell['f']).strip()
    if value is None:
        return ''
    return str(value).strip()
