import csv
import io
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

import boto3
from botocore.exceptions import ClientError
from fpdf import FPDF
from fpdf.enums import XPos, YPos

from app.core.config import settings
from app.utils.analyzer import FinancialAnalyticsReport
from app.utils.formatting import ZERO, category_label, format_currency, format_percent
from app.utils.insights import Insight

logger = logging.getLogger(__name__)

# Initialize S3 client using default AWS credential chain
# (environment variables, AWS credentials file, or IAM role)
s3 = boto3.client("s3", region_name=settings.S3_REGION)

HEADER_FILL = (30, 64, 175)
STRIPE_FILL = (249, 250, 251)
INSIGHT_COLORS = {
    "warning": (220, 38, 38),
    "success": (22, 163, 74),
    "info": (37, 99, 235),
}


def _latin1(text: str) -> str:
    # Core PDF fonts only cover latin-1
    return text.replace("€", "EUR ").encode("latin-1", "replace").decode("latin-1")


def _utilization_color(utilization) -> tuple:
    if utilization > 100:
        return (220, 38, 38)
    if utilization > 80:
        return (234, 179, 8)
    return (22, 163, 74)


class ReportPDF(FPDF):
    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(107, 114, 128)
        self.cell(0, 10, f"Page {self.page_no()} of {{nb}}", align="C")
        self.set_text_color(0, 0, 0)

    def section_title(self, text: str):
        self.ln(4)
        self.set_font("Helvetica", "B", 14)
        self.cell(0, 10, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def draw_table(self, headers: Sequence[str], widths: Sequence[float], rows: Iterable[Sequence[str]]):
        self.set_font("Helvetica", "B", 9)
        self.set_fill_color(*HEADER_FILL)
        self.set_text_color(255, 255, 255)
        for header, width in zip(headers, widths):
            self.cell(width, 8, header, border=1, fill=True)
        self.ln()

        self.set_text_color(0, 0, 0)
        self.set_fill_color(*STRIPE_FILL)
        self.set_font("Helvetica", "", 8)
        for index, row in enumerate(rows):
            for value, width in zip(row, widths):
                self.cell(width, 8, _latin1(value), border=1, fill=index % 2 == 0)
            self.ln()


def build_financial_report_pdf(
    report: FinancialAnalyticsReport,
    title: str = "Financial Report",
    currency: str = "USD",
    insights: Optional[List[Insight]] = None,
) -> bytes:
    pdf = ReportPDF()
    pdf.add_page()
    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(0, 10, _latin1(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("Helvetica", "", 10)
    pdf.cell(0, 8, f"Generated on {datetime.now(timezone.utc).strftime('%B %d, %Y')}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def amount(value) -> str:
        return format_currency(value, currency)

    # Key metrics
    pdf.section_title("Key Metrics")
    pdf.set_font("Helvetica", "", 10)
    trend = report.monthly_trend
    avg_monthly = sum((m.costs + m.expenses for m in trend), ZERO) / len(trend) if trend else ZERO
    metrics = [
        ("Total Budget", amount(report.total_budgets)),
        ("Total Costs", amount(report.total_costs)),
        ("Total Expenses", amount(report.total_expenses)),
        ("Total Spending", amount(report.total_spending)),
        ("Average Monthly Spending", amount(avg_monthly)),
    ]
    for label, value in metrics:
        pdf.cell(60, 7, f"{label}:")
        pdf.cell(0, 7, _latin1(value), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.cell(60, 7, "Budget Utilization:")
    pdf.set_text_color(*_utilization_color(report.budget_utilization))
    pdf.cell(0, 7, format_percent(report.budget_utilization), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_text_color(0, 0, 0)

    if report.budget_vs_actual:
        pdf.section_title("Budget vs Actual")
        pdf.draw_table(
            ["Category", "Budgeted", "Actual", "Variance", "Used"],
            [45, 35, 35, 35, 20],
            (
                [
                    category_label(row.category),
                    amount(row.budgeted),
                    amount(row.actual),
                    amount(row.variance),
                    format_percent(row.percentage),
                ]
                for row in report.budget_vs_actual
            ),
        )

    if report.top_categories:
        pdf.section_title("Top Spending Categories")
        pdf.draw_table(
            ["Category", "Total Amount", "Transactions"],
            [60, 50, 35],
            (
                [category_label(item.category), amount(item.total), str(item.count)]
                for item in report.top_categories[:10]
            ),
        )

    if trend:
        pdf.section_title("Monthly Trend")
        pdf.draw_table(
            ["Month", "Costs", "Expenses", "Total", "Budget"],
            [34, 38, 38, 38, 38],
            (
                [
                    item.month,
                    amount(item.costs),
                    amount(item.expenses),
                    amount(item.costs + item.expenses),
                    amount(item.budgets),
                ]
                for item in trend
            ),
        )

    if insights:
        pdf.section_title("Insights")
        for insight in insights:
            pdf.set_font("Helvetica", "B", 10)
            pdf.set_text_color(*INSIGHT_COLORS.get(insight.type, (0, 0, 0)))
            pdf.cell(0, 7, _latin1(insight.title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.set_text_color(0, 0, 0)
            pdf.set_font("Helvetica", "", 9)
            pdf.multi_cell(0, 5, _latin1(insight.message), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.ln(2)

    return bytes(pdf.output())


def build_category_csv(report: FinancialAnalyticsReport) -> bytes:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=["category", "costs", "expenses", "budgets", "total"])
    writer.writeheader()
    for row in report.category_breakdown:
        if row.total == 0 and row.budgets == 0:
            continue
        writer.writerow({
            "category": row.category.value,
            "costs": row.costs,
            "expenses": row.expenses,
            "budgets": row.budgets,
            "total": row.total,
        })
    return output.getvalue().encode()


def report_filename(title: str, extension: str) -> str:
    return f"{'_'.join(title.split())}_{datetime.now(timezone.utc).date().isoformat()}.{extension}"


def upload_report(content: bytes, key: str, content_type: str = "application/pdf") -> Optional[str]:
    """Upload an exported report to S3 and return its URL, or None on failure."""
    try:
        s3.upload_fileobj(
            io.BytesIO(content),
            settings.S3_BUCKET_NAME,
            key,
            ExtraArgs={"ContentType": content_type},
        )
        return f"https://{settings.S3_BUCKET_NAME}.s3.{settings.S3_REGION}.amazonaws.com/{key}"
    except ClientError as e:
        logger.error(f"Failed to upload report {key}: {e}")
        return None
