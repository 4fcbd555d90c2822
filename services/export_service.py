"""
Export service — Inventory report Excel files.

Renders weekly report rows into the workbook mailed to the admins.
"""

from io import BytesIO
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Border, Side, PatternFill
import structlog

from models.report import InventoryReportRow

logger = structlog.get_logger(__name__)

REPORT_SHEET_TITLE = "Inventory"

# (header, row attribute, column width)
REPORT_COLUMNS = [
    ("Product", "product", 30),
    ("SKU", "sku", 25),
    ("Flavor", "flavor", 20),
    ("Current Stock", "current_stock", 14),
    ("Avg Weekly", "avg_weekly", 12),
    ("Reorder Pt", "reorder_point", 12),
    ("Velocity", "velocity", 10),
]

LOW_STOCK_FILL = PatternFill(start_color="FFF2CC", end_color="FFF2CC", fill_type="solid")


class ExportService:
    """Service for generating report files."""

    def generate_inventory_report_excel(
        self,
        rows: list[InventoryReportRow],
        low_stock_threshold: Optional[int] = None,
    ) -> BytesIO:
        """
        Generate the weekly inventory workbook.

        One sheet, a bold header row, one line per product × flavor.

        Args:
            rows: Report lines in display order
            low_stock_threshold: Highlight lines with stock below this

        Returns:
            BytesIO containing the Excel file
        """
        logger.info("generating_inventory_report", rows=len(rows))

        wb = Workbook()
        ws = wb.active
        ws.title = REPORT_SHEET_TITLE

        bold_font = Font(bold=True)
        thin_border = Border(
            bottom=Side(style="thin", color="000000")
        )

        for col, (header, _, width) in enumerate(REPORT_COLUMNS, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = bold_font
            cell.border = thin_border
            ws.column_dimensions[cell.column_letter].width = width

        ws.freeze_panes = "A2"

        for row_idx, row in enumerate(rows, start=2):
            highlight = (
                low_stock_threshold is not None
                and row.current_stock < low_stock_threshold
            )
            for col, (_, attr, _) in enumerate(REPORT_COLUMNS, start=1):
                cell = ws.cell(row=row_idx, column=col, value=getattr(row, attr))
                if highlight:
                    cell.fill = LOW_STOCK_FILL

        output = BytesIO()
        wb.save(output)
        output.seek(0)

        logger.info("inventory_report_generated", rows=len(rows))
        return output


# Singleton instance
_export_service: Optional[ExportService] = None


def get_export_service() -> ExportService:
    """Get or create ExportService singleton instance."""
    global _export_service
    if _export_service is None:
        _export_service = ExportService()
    return _export_service
