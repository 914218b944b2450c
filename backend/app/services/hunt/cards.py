import csv
import io
import json
import zipfile
from typing import Iterable, List, Mapping

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .errors import InvalidDeck
from .state import CARD_KINDS, Card

EXCEL_SUFFIXES = ('.xlsx', '.xlsm')


def cards_from_rows(rows: Iterable[Mapping]) -> List[Card]:
    """Build the master deck from spreadsheet-like rows.

    Each row needs a ``text`` column and may carry a ``type`` (or ``kind``)
    column. Ids follow row order (``card_1``, ``card_2``...) so a re-upload
    of the same sheet keeps ids stable. Rows with blank text are skipped.
    """
    cards = []
    for idx, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise InvalidDeck(f'Row {idx + 1} is not an object.')
        text = str(row.get('text') or '').strip()
        if not text:
            continue
        kind = str(row.get('type') or row.get('kind') or '').strip().lower() or 'challenge'
        if kind not in CARD_KINDS:
            raise InvalidDeck(f'Row {idx + 1}: unknown card type {kind!r}.')
        cards.append(Card(id=f'card_{idx + 1}', kind=kind, text=text))
    return cards


def cards_from_csv(text: str) -> List[Card]:
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames or 'text' not in [f.strip().lower() for f in reader.fieldnames]:
        raise InvalidDeck('CSV deck needs a "text" column.')
    rows = [{(k or '').strip().lower(): v for k, v in row.items()} for row in reader]
    return cards_from_rows(rows)


def cards_from_xlsx(data: bytes) -> List[Card]:
    """Read the ``deck`` sheet of a workbook, or its first sheet."""
    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError) as exc:
        raise InvalidDeck(f'Deck workbook could not be read: {exc}') from exc
    try:
        sheet = next((wb[name] for name in wb.sheetnames if name.strip().lower() == 'deck'), None)
        if sheet is None:
            sheet = wb.worksheets[0]
        values = sheet.iter_rows(values_only=True)
        header = next(values, None)
        columns = [str(h or '').strip().lower() for h in header or ()]
        if 'text' not in columns:
            raise InvalidDeck('Deck sheet needs a "text" column.')
        rows = [dict(zip(columns, row)) for row in values]
    finally:
        wb.close()
    return cards_from_rows(rows)


def cards_from_json(raw: str) -> List[Card]:
    try:
        rows = json.loads(raw)
    except ValueError as exc:
        raise InvalidDeck(f'Deck file is not valid JSON: {exc}') from exc
    if isinstance(rows, dict):
        rows = rows.get('cards') or rows.get('deck') or []
    if not isinstance(rows, list):
        raise InvalidDeck('Deck JSON must be a list of cards.')
    return cards_from_rows(rows)


def cards_from_upload(filename: str, data: bytes) -> List[Card]:
    """Parse a deck upload by its extension: Excel, JSON, otherwise CSV."""
    name = (filename or '').lower()
    if name.endswith(EXCEL_SUFFIXES):
        return cards_from_xlsx(data)
    try:
        text = data.decode('utf-8-sig')
    except UnicodeDecodeError as exc:
        raise InvalidDeck('Deck file must be UTF-8 encoded.') from exc
    if name.endswith('.json'):
        return cards_from_json(text)
    return cards_from_csv(text)


def load_deck_file(path: str) -> List[Card]:
    """Read a master deck from a ``.xlsx``, ``.json`` or ``.csv`` file."""
    with open(path, 'rb') as fh:
        data = fh.read()
    return cards_from_upload(path, data)
