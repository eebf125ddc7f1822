"""Workbook store: the host document behind every dashboard step.

All dashboard steps go through :class:`WorkbookStore` instead of touching a
workbook file directly. Writes are staged on the in-memory openpyxl workbook
and only become durable at :meth:`WorkbookStore.sync`, which saves the file
when the store is file-backed. A store built with :meth:`WorkbookStore.in_memory`
never touches disk and only counts checkpoints, which is what the tests use.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import Cell
from openpyxl.drawing.spreadsheet_drawing import AbsoluteAnchor
from openpyxl.formatting.formatting import ConditionalFormattingList
from openpyxl.formatting.rule import Rule
from openpyxl.styles import Alignment, Border, Font, PatternFill
from openpyxl.worksheet.worksheet import Worksheet


logger = logging.getLogger(__name__)


class DashboardError(Exception):
    """Base error for dashboard generation."""


class SheetNotFoundError(DashboardError):
    def __init__(self, name: str, available: list[str]):
        super().__init__(f"Sheet '{name}' not found. Available: {available}")
        self.name = name


class WorkbookStore:
    def __init__(self, workbook: Workbook, output_path: str | Path | None = None):
        self.workbook = workbook
        self.output_path = Path(output_path) if output_path is not None else None
        self.sync_count = 0

    @classmethod
    def open(cls, input_path: str | Path, output_path: str | Path | None = None) -> "WorkbookStore":
        input_path = Path(input_path)
        if not input_path.exists():
            raise FileNotFoundError(f"Workbook not found: {input_path}")
        if input_path.suffix.lower() not in {".xlsx", ".xlsm"}:
            raise ValueError("Unsupported file format. Use .xlsx or .xlsm")
        workbook = load_workbook(input_path, keep_vba=input_path.suffix.lower() == ".xlsm")
        return cls(workbook, output_path if output_path is not None else input_path)

    @classmethod
    def in_memory(cls, workbook: Workbook) -> "WorkbookStore":
        return cls(workbook, None)

    def sheet(self, name: str) -> Worksheet:
        if name not in self.workbook.sheetnames:
            raise SheetNotFoundError(name, self.workbook.sheetnames)
        return self.workbook[name]

    def cells(self, sheet_name: str, ref: str) -> Iterator[Cell]:
        ws = self.sheet(sheet_name)
        selection = ws[ref]
        if isinstance(selection, Cell):
            yield selection
            return
        for row in selection:
            if isinstance(row, Cell):
                yield row
            else:
                yield from row

    def clear(self, sheet_name: str, ref: str) -> None:
        for cell in self.cells(sheet_name, ref):
            cell.value = None
            cell.font = Font()
            cell.fill = PatternFill()
            cell.border = Border()
            cell.alignment = Alignment()
            cell.number_format = "General"

    def write(self, sheet_name: str, ref: str, value) -> None:
        self.sheet(sheet_name)[ref].value = value

    def write_row(self, sheet_name: str, row: int, first_col: int, values: Iterable) -> None:
        ws = self.sheet(sheet_name)
        for offset, value in enumerate(values):
            ws.cell(row=row, column=first_col + offset, value=value)

    def read(self, sheet_name: str, ref: str):
        return self.sheet(sheet_name)[ref].value

    def set_number_format(self, sheet_name: str, ref: str, fmt: str) -> None:
        for cell in self.cells(sheet_name, ref):
            cell.number_format = fmt

    def set_style(
        self,
        sheet_name: str,
        ref: str,
        font: Font | None = None,
        fill: PatternFill | None = None,
        alignment: Alignment | None = None,
    ) -> None:
        for cell in self.cells(sheet_name, ref):
            if font is not None:
                cell.font = font
            if fill is not None:
                cell.fill = fill
            if alignment is not None:
                cell.alignment = alignment

    def charts(self, sheet_name: str) -> list:
        return list(self.sheet(sheet_name)._charts)

    def add_chart(self, sheet_name: str, chart, anchor: str | AbsoluteAnchor) -> None:
        self.sheet(sheet_name).add_chart(chart, anchor)

    def remove_charts(self, sheet_name: str) -> int:
        ws = self.sheet(sheet_name)
        removed = len(ws._charts)
        ws._charts = []
        return removed

    def conditional_rules(self, sheet_name: str, ref: str) -> list[Rule]:
        ws = self.sheet(sheet_name)
        rules: list[Rule] = []
        for cf in ws.conditional_formatting:
            if str(cf.sqref) == ref:
                rules.extend(cf.rules)
        return rules

    def replace_conditional_rules(self, sheet_name: str, ref: str, rules: Iterable[Rule]) -> int:
        """Swap every rule attached to ``ref`` for ``rules`` in one pass.

        Rules on other ranges keep their order. Returns how many rules were
        dropped from ``ref``.
        """
        ws = self.sheet(sheet_name)
        kept: list[tuple[str, Rule]] = []
        dropped = 0
        for cf in ws.conditional_formatting:
            sqref = str(cf.sqref)
            if sqref == ref:
                dropped += len(cf.rules)
                continue
            kept.extend((sqref, rule) for rule in cf.rules)

        rebuilt = ConditionalFormattingList()
        # Priorities are renumbered across the whole sheet.
        for sqref, rule in kept:
            rule.priority = 0
            rebuilt.add(sqref, rule)
        for rule in rules:
            rule.priority = 0
            rebuilt.add(ref, rule)
        ws.conditional_formatting = rebuilt
        return dropped

    def sync(self) -> None:
        self.sync_count += 1
        if self.output_path is None:
            logger.debug("Checkpoint %d (in-memory)", self.sync_count)
            return
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.workbook.save(self.output_path)
        logger.debug("Checkpoint %d saved to %s", self.sync_count, self.output_path)
