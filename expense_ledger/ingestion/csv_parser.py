"""CSV decoder for the finance app export members."""
import csv
import io
import logging
import math
import re
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from expense_ledger.config import VERSION_MARKER
from expense_ledger.ingestion.records import (
    DECIMAL,
    FLAG,
    TEXT,
    TIMESTAMP,
    ExportRecord,
)


logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=ExportRecord)

# Leading numeric prefix, the way the exporting app reads numbers ("12.50 INR" -> 12.5)
_DECIMAL_PREFIX = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_INT_PREFIX = re.compile(r"[+-]?[0-9]+")


class DecodeStats(BaseModel):
    """Row counts for one decoded member."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    member: str = ""
    rows_read: int = 0
    records: int = 0
    rows_skipped: int = 0


def parse_decimal(value: Any) -> Optional[float]:
    """Parse the leading decimal of a field, returning None when there is none.

    Trailing text is ignored, so ``"12.50 INR"`` gives 12.5 and ``"1_000"`` gives 1.
    """
    if value is None:
        return None

    match = _DECIMAL_PREFIX.match(str(value).strip())
    if match is None:
        return None

    number = float(match.group())
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_int(value: Any, default: Optional[int] = 0) -> Optional[int]:
    """Parse the leading integer of a field, falling back to ``default``.

    Decimal strings such as ``"1700000000000.0"`` are truncated toward zero.
    """
    if value is None:
        return default

    match = _INT_PREFIX.match(str(value).strip())
    if match is None:
        return default
    return int(match.group())


_FIELD_PARSERS = {
    TEXT: lambda value: value,
    DECIMAL: parse_decimal,
    TIMESTAMP: lambda value: parse_int(value, default=None),
    FLAG: lambda value: parse_int(value, default=0),
}


def tokenize(text: str) -> List[List[str]]:
    """Split CSV text into rows of fields, dropping completely empty lines."""
    # A single field may be as long as the whole member
    if len(text) > csv.field_size_limit():
        csv.field_size_limit(len(text))
    reader = csv.reader(io.StringIO(text))
    return [row for row in reader if row]


def has_version_header(rows: List[List[str]]) -> bool:
    """Whether the member starts with a ``CSV_VERSION`` marker row."""
    return bool(rows) and bool(rows[0]) and rows[0][0].startswith(VERSION_MARKER)


class CSVParser(Generic[RecordT]):
    """Decode one export CSV member into typed records.

    Rows are mapped positionally using the record's ``LAYOUT``. Rows with fewer
    fields than the layout needs are skipped; fields that fail to parse fall
    back to the layout's default for their kind.
    """

    def __init__(self, record_type: Type[RecordT], log: Optional[logging.Logger] = None):
        """Initialize the parser.

        Args:
            record_type: Record model to produce (Transaction, Budget, PaymentReminder)
            log: Optional diagnostic sink; defaults to this module's logger
        """
        self.record_type = record_type
        self.log = log or logger
        self.rows_read = 0
        self.rows_skipped = 0
        self.records = 0

    def parse_text(self, text: str) -> List[RecordT]:
        """Parse the text of one CSV member.

        Args:
            text: Decoded member contents

        Returns:
            Records in file order
        """
        rows = tokenize(text)
        start = 2 if has_version_header(rows) else 1

        self.rows_read = 0
        self.rows_skipped = 0
        self.records = 0
        records = []
        for line_no, row in enumerate(rows[start:], start=start + 1):
            self.rows_read += 1
            record = self.map_row(row)
            if record is None:
                self.rows_skipped += 1
                self.log.debug(
                    f"Skipping {self.record_type.__name__} row {line_no}: "
                    f"{len(row)} fields, need {self.record_type.field_count()}"
                )
                continue
            records.append(record)

        self.records = len(records)
        return records

    def stats(self, member: str = "") -> DecodeStats:
        """Counts from the most recent parse."""
        return DecodeStats(
            member=member,
            rows_read=self.rows_read,
            records=self.records,
            rows_skipped=self.rows_skipped,
        )

    def map_row(self, row: List[str]) -> Optional[RecordT]:
        """Map one tokenized row into a record, or None if the row is too short."""
        layout = self.record_type.LAYOUT
        if len(row) < len(layout):
            return None

        values: Dict[str, Any] = {}
        for (name, kind), raw in zip(layout, row):
            values[name] = _FIELD_PARSERS[kind](raw)
        return self.record_type(**values)
