"""ZIP archive loader for finance app exports."""
import csv
import io
import logging
import zipfile
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from expense_ledger.config import (
    BUDGET_HISTORY_MARKER,
    BUDGETS_MEMBER,
    PAYMENT_REMINDERS_MEMBER,
    TRANSACTIONS_MEMBER,
)
from expense_ledger.ingestion.csv_parser import CSVParser, DecodeStats
from expense_ledger.ingestion.records import Budget, PaymentReminder, Transaction
from expense_ledger.intelligence.budget_reconciler import BudgetReconciler


logger = logging.getLogger(__name__)


class DecodeError(Exception):
    """Raised when an export archive cannot be opened."""
    pass


class LedgerData(BaseModel):
    """The three record collections decoded from one archive, with per-member counts."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    transactions: List[Transaction] = []
    budgets: List[Budget] = []
    payment_reminders: List[PaymentReminder] = []
    members: List[DecodeStats] = []


def member_kind(filename: str) -> Optional[str]:
    """Classify an archive member by name.

    Returns:
        "transactions", "budgets", "payment_reminders", or None if ignored
    """
    if not filename.endswith(".csv"):
        return None
    if TRANSACTIONS_MEMBER in filename:
        return "transactions"
    if BUDGETS_MEMBER in filename and BUDGET_HISTORY_MARKER not in filename:
        return "budgets"
    if PAYMENT_REMINDERS_MEMBER in filename:
        return "payment_reminders"
    return None


_RECORD_TYPES = {
    "transactions": Transaction,
    "budgets": Budget,
    "payment_reminders": PaymentReminder,
}


class ArchiveLoader:
    """Load transactions, budgets and payment reminders from an export ZIP."""

    def __init__(self, log: Optional[logging.Logger] = None):
        """Initialize the loader.

        Args:
            log: Optional diagnostic sink shared with the decoder and reconciler
        """
        self.log = log or logger
        self.reconciler = BudgetReconciler(log=self.log)

    def load(self, source: Union[bytes, Path, str]) -> LedgerData:
        """Decode an archive and reconcile its budgets against its transactions.

        Args:
            source: Archive bytes, or a path to the archive file

        Returns:
            LedgerData with the three collections in archive row order

        Raises:
            DecodeError: If the archive cannot be opened or a member cannot be tokenized
        """
        collections = {kind: [] for kind in _RECORD_TYPES}
        members = []

        with self._open(source) as archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue

                kind = member_kind(info.filename)
                if kind is None:
                    continue

                text = self._read_member(archive, info)
                parser = CSVParser(_RECORD_TYPES[kind], log=self.log)
                try:
                    collections[kind] = parser.parse_text(text)
                except csv.Error as e:
                    raise DecodeError(f"Failed to process ZIP file: {info.filename}: {e}") from e
                members.append(parser.stats(info.filename))
                self.log.info(
                    f"Parsed {info.filename}: {len(collections[kind])} records, "
                    f"{parser.rows_skipped} rows skipped"
                )

        budgets = self.reconciler.reconcile(collections["budgets"], collections["transactions"])

        return LedgerData(
            transactions=collections["transactions"],
            budgets=budgets,
            payment_reminders=collections["payment_reminders"],
            members=members,
        )

    def _open(self, source: Union[bytes, Path, str]) -> zipfile.ZipFile:
        """Open the archive, translating failures into DecodeError."""
        try:
            if isinstance(source, (bytes, bytearray)):
                return zipfile.ZipFile(io.BytesIO(source))
            return zipfile.ZipFile(Path(source))
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as e:
            raise DecodeError(f"Failed to process ZIP file: {e}") from e

    def _read_member(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> str:
        """Read one member as text."""
        try:
            data = archive.read(info)
        except (zipfile.BadZipFile, OSError, RuntimeError, NotImplementedError) as e:
            raise DecodeError(f"Failed to process ZIP file: cannot read {info.filename}: {e}") from e
        return data.decode("utf-8-sig", errors="replace")


def load(source: Union[bytes, Path, str], log: Optional[logging.Logger] = None) -> LedgerData:
    """Load an export archive. See ArchiveLoader.load."""
    return ArchiveLoader(log=log).load(source)
