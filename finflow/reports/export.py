"""Spreadsheet (XLSX) export of transactions."""

from pathlib import Path
from typing import BinaryIO, Iterable, Optional, Union

import structlog
from openpyxl import Workbook

from finflow.audit import ActivityLogger
from finflow.models.transaction import Transaction
from finflow.repositories import (
    CategoryRepository,
    IncomeSourceRepository,
    TransactionRepository,
)


DEFAULT_FILENAME = "transacoes_fluxo_financeiro.xlsx"
SHEET_TITLE = "Transações"
COLUMN_WIDTHS = {"A": 12, "B": 40, "C": 10, "D": 25, "E": 15}


def build_workbook(
    transactions: Iterable[Transaction],
    category_labels: dict[str, str],
    source_labels: dict[str, str],
    currency: str = "R$",
) -> Workbook:
    """
    One row per transaction, newest first.

    Amounts are written as numbers with a currency format so they can
    be summed in the spreadsheet.
    """
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = SHEET_TITLE
    sheet.append(["Data", "Descrição", "Tipo", "Categoria/Fonte", f"Valor ({currency})"])

    money_format = f'"{currency}" #,##0.00;[Red]-"{currency}" #,##0.00'
    ordered = sorted(transactions, key=lambda tx: (tx.date, tx.created_at), reverse=True)
    for tx in ordered:
        if tx.is_income:
            kind = "Receita"
            origin = source_labels.get(tx.source, tx.source) if tx.source else None
        else:
            kind = "Despesa"
            origin = category_labels.get(tx.category, tx.category) if tx.category else None

        sheet.append([tx.date, tx.description, kind, origin or "-", float(tx.amount)])
        row = sheet.max_row
        sheet.cell(row=row, column=1).number_format = "DD/MM/YYYY"
        sheet.cell(row=row, column=5).number_format = money_format

    for column, width in COLUMN_WIDTHS.items():
        sheet.column_dimensions[column].width = width

    return workbook


class SpreadsheetExporter:
    """Writes every stored transaction to an XLSX file and logs the export."""

    def __init__(
        self,
        transactions: TransactionRepository,
        categories: CategoryRepository,
        sources: IncomeSourceRepository,
        activity: Optional[ActivityLogger] = None,
        currency: str = "R$",
    ):
        self._transactions = transactions
        self._categories = categories
        self._sources = sources
        self._activity = activity or ActivityLogger()
        self._currency = currency
        self._logger = structlog.get_logger(__name__)

    def export(self, destination: Union[str, Path, BinaryIO] = DEFAULT_FILENAME) -> int:
        """
        Write the spreadsheet.

        Returns:
            Number of transactions exported. When there are none,
            nothing is written and 0 is returned.
        """
        transactions = self._transactions.list()
        if not transactions:
            self._logger.info("spreadsheet_export_skipped", reason="no transactions")
            return 0

        workbook = build_workbook(
            transactions,
            self._categories.labels(),
            self._sources.labels(),
            self._currency,
        )
        workbook.save(destination)

        self._activity.log_backup_exported(len(transactions), target="XLSX spreadsheet")
        return len(transactions)
