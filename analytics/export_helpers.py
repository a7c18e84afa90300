from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

import pandas as pd
from openpyxl.formatting.rule import ColorScaleRule
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from analytics.contracts import CreditAllocationOutcome, ProposalResult
from finance.contracts import CashFlowRow

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

CASH_FLOW_COLUMNS = [
    "year",
    "generation_kwh",
    "tariff_rate",
    "gross_savings",
    "wire_fee_cost",
    "net_savings",
    "extra_cost",
    "financing_cost",
    "investment",
    "cumulative_cash_flow",
]

ALLOCATION_COLUMNS = [
    "unit",
    "is_generator",
    "cap_kwh",
    "requested_share_percent",
    "allocated_kwh",
    "effective_percent",
]

PAYMENT_OPTION_COLUMNS = [
    "option",
    "kind",
    "primary",
    "upfront_payment",
    "installment_amount",
    "num_installments",
    "monthly_rate_percent",
    "total_paid",
]


# =====================================================================
# DataFrame builders
# =====================================================================


def cash_flow_dataframe(rows: Sequence[CashFlowRow]) -> pd.DataFrame:
    """One row per projection year, columns in ``CASH_FLOW_COLUMNS`` order."""
    return pd.DataFrame([row.as_dict() for row in rows], columns=CASH_FLOW_COLUMNS)


def allocation_dataframe(outcome: CreditAllocationOutcome) -> pd.DataFrame:
    """Per-unit rateio table; the surplus appears as a trailing 'unallocated' row."""
    records = []
    for unit, allocated, pct in zip(
        outcome.units, outcome.result.allocated_kwh, outcome.result.effective_percent
    ):
        records.append(
            {
                "unit": unit.name,
                "is_generator": unit.is_generator,
                "cap_kwh": unit.cap_kwh,
                "requested_share_percent": unit.requested_share_percent,
                "allocated_kwh": allocated,
                "effective_percent": pct,
            }
        )
    records.append(
        {
            "unit": "unallocated",
            "is_generator": False,
            "cap_kwh": None,
            "requested_share_percent": None,
            "allocated_kwh": outcome.result.unallocated_kwh,
            "effective_percent": None,
        }
    )
    return pd.DataFrame(records, columns=ALLOCATION_COLUMNS)


def payment_options_dataframe(result: ProposalResult) -> pd.DataFrame:
    """Payment options side by side; ``primary`` marks the one projected."""
    records = [
        {
            "option": q.option.name or q.option.kind,
            "kind": q.option.kind,
            "primary": q.option is result.financing,
            "upfront_payment": q.upfront_payment,
            "installment_amount": q.installment_amount,
            "num_installments": q.num_installments,
            "monthly_rate_percent": q.option.monthly_rate_percent,
            "total_paid": q.total_paid,
        }
        for q in result.payment_options
    ]
    return pd.DataFrame(records, columns=PAYMENT_OPTION_COLUMNS)


def summary_dataframe(result: ProposalResult) -> pd.DataFrame:
    """Single-row headline KPIs for a scenario."""
    m = result.metrics
    return pd.DataFrame(
        [
            {
                "scenario_name": result.scenario_name,
                "investment_price": result.investment_price,
                "upfront_payment": result.upfront_payment,
                "installment_amount": result.installment_amount,
                "num_installments": result.num_installments,
                "base_generation_kwh": result.base_generation_kwh,
                "base_tariff": result.base_tariff,
                "payback_years": m.payback_years,
                "payback_months": m.payback_months,
                "payback_total_months": m.payback_total_months,
                "irr_percent": m.irr_percent,
                "npv": m.npv,
                "discount_rate_percent": result.assumptions.discount_rate_percent,
                "roi_percent": m.roi_percent,
                "total_net_savings": m.total_net_savings,
            }
        ]
    )


# =====================================================================
# CSV export
# =====================================================================


def export_csv_bundle(result: ProposalResult, outdir: PathLike) -> Dict[str, Path]:
    """
    Write summary, cash-flow and (when present) rateio and payment-option
    tables as CSV.

    Files are named ``<scenario>_summary.csv``, ``<scenario>_cash_flow.csv``,
    ``<scenario>_rateio.csv`` and ``<scenario>_payment_options.csv``.
    Returns the written paths by table name.
    """
    out = Path(outdir)
    out.mkdir(parents=True, exist_ok=True)
    stem = result.scenario_name

    written: Dict[str, Path] = {}

    path = out / f"{stem}_summary.csv"
    summary_dataframe(result).to_csv(path, index=False)
    written["summary"] = path

    path = out / f"{stem}_cash_flow.csv"
    cash_flow_dataframe(result.cash_flow).to_csv(path, index=False)
    written["cash_flow"] = path

    if result.credit_allocation is not None:
        path = out / f"{stem}_rateio.csv"
        allocation_dataframe(result.credit_allocation).to_csv(path, index=False)
        written["rateio"] = path

    if result.payment_options:
        path = out / f"{stem}_payment_options.csv"
        payment_options_dataframe(result).to_csv(path, index=False)
        written["payment_options"] = path

    for name, p in written.items():
        logger.info("Exported %s table to %s", name, p)
    return written


# =====================================================================
# Excel export
# =====================================================================


class ExcelExporter:
    """Helper for writing a proposal evaluation to an Excel workbook.

    Produces a Summary sheet (KPIs, with the payment options stacked
    underneath), a CashFlow sheet (cumulative column shaded
    red-to-green) and, when a rateio was run, a Rateio sheet. Columns are
    auto-fitted before saving.
    """

    def __init__(self, output_path: PathLike) -> None:
        self.output_path = Path(output_path)
        # Created lazily so nothing is written until a sheet is added.
        self._writer: Optional[pd.ExcelWriter] = None

    def _ensure_writer(self) -> pd.ExcelWriter:
        if self._writer is None:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            self._writer = pd.ExcelWriter(self.output_path, engine="openpyxl")
        return self._writer

    def add_dataframe_sheet(
        self,
        sheet_name: str,
        df: pd.DataFrame,
        freeze_panes: Optional[str] = "A2",
        format_headers: bool = True,
        auto_filter: bool = True,
        startrow: int = 0,
    ) -> None:
        """Write ``df`` to ``sheet_name`` with bold headers, filter and frozen header row.

        ``startrow`` (0-based) stacks a second table under an existing one on
        the same sheet; only the table at the top gets the autofilter.
        """
        writer = self._ensure_writer()
        df.to_excel(writer, sheet_name=sheet_name, index=False, startrow=startrow)
        ws = writer.sheets[sheet_name]

        if format_headers:
            for cell in ws[startrow + 1]:
                cell.font = Font(bold=True)
        if auto_filter and startrow == 0:
            ws.auto_filter.ref = ws.dimensions
        if freeze_panes:
            ws.freeze_panes = freeze_panes

    def add_color_scale(self, sheet_name: str, column_range: str) -> None:
        """Red (low) to green (high) shading over an Excel range like 'J2:J27'."""
        if self._writer is None:
            logger.debug("ExcelExporter: no writer yet; color scale skipped.")
            return
        ws = self._writer.sheets[sheet_name]
        rule = ColorScaleRule(
            start_type="min",
            start_color="FFF8696B",
            mid_type="num",
            mid_value=0,
            mid_color="FFFFFFFF",
            end_type="max",
            end_color="FF63BE7B",
        )
        ws.conditional_formatting.add(column_range, rule)

    def _autofit_columns(self) -> None:
        if self._writer is None:
            return
        for ws in self._writer.sheets.values():
            for idx, column in enumerate(ws.iter_cols(min_row=1, max_row=ws.max_row), start=1):
                width = max((len(str(c.value)) for c in column if c.value is not None), default=8)
                ws.column_dimensions[get_column_letter(idx)].width = min(width + 2, 40)

    def save(self) -> None:
        """Persist the workbook to disk; a no-op when nothing was written."""
        if self._writer is not None:
            self._autofit_columns()
            self._writer.close()
            self._writer = None
            logger.info("ExcelExporter: wrote workbook to %s", self.output_path)

    def export_proposal(self, result: ProposalResult) -> Path:
        """Write all sheets for ``result`` and save the workbook."""
        summary = summary_dataframe(result)
        self.add_dataframe_sheet("Summary", summary, freeze_panes=None)
        if result.payment_options:
            self.add_dataframe_sheet(
                "Summary",
                payment_options_dataframe(result),
                freeze_panes=None,
                startrow=len(summary) + 2,
            )

        cf = cash_flow_dataframe(result.cash_flow)
        self.add_dataframe_sheet("CashFlow", cf)
        col = get_column_letter(CASH_FLOW_COLUMNS.index("cumulative_cash_flow") + 1)
        self.add_color_scale("CashFlow", f"{col}2:{col}{len(cf) + 1}")

        if result.credit_allocation is not None:
            self.add_dataframe_sheet("Rateio", allocation_dataframe(result.credit_allocation))

        self.save()
        return self.output_path


__all__ = [
    "CASH_FLOW_COLUMNS",
    "ALLOCATION_COLUMNS",
    "cash_flow_dataframe",
    "allocation_dataframe",
    "summary_dataframe",
    "payment_options_dataframe",
    "PAYMENT_OPTION_COLUMNS",
    "export_csv_bundle",
    "ExcelExporter",
]
