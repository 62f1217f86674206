import logging
import uuid
from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from app.core.config import settings
from app.models.finance import FinancialDataset
from app.utils import pdf_report
from app.utils.analyzer import FinanceAnalyzer, FinancialAnalyticsReport
from app.utils.insights import InsightGenerator, financial_health
from app.utils.report_cache import ReportCache

router = APIRouter()
logger = logging.getLogger(__name__)

finance_analyzer = FinanceAnalyzer()
insight_generator = InsightGenerator(
    over_budget_pct=settings.INSIGHT_OVER_BUDGET_PCT,
    caution_pct=settings.INSIGHT_CAUTION_PCT,
    healthy_pct=settings.INSIGHT_HEALTHY_PCT,
    high_spend_share_pct=settings.INSIGHT_HIGH_SPEND_SHARE_PCT,
    max_active_expenses=settings.INSIGHT_MAX_ACTIVE_EXPENSES,
)
report_cache = ReportCache(max_entries=settings.REPORT_CACHE_SIZE)


def _project_filter(project_id: Optional[str]) -> Optional[str]:
    """Blank project ids mean no filter, same as an omitted one."""
    if project_id is None or not project_id.strip():
        return None
    return project_id


def _analyze(dataset: FinancialDataset, project_id: Optional[str]) -> FinancialAnalyticsReport:
    def compute() -> FinancialAnalyticsReport:
        scoped = dataset.for_project(project_id)
        logger.info(
            f"Computing analytics for project={project_id or '*'}: "
            f"{len(scoped.costs)} costs, {len(scoped.expenses)} expenses, {len(scoped.budgets)} budgets"
        )
        return finance_analyzer.summarize(scoped.costs, scoped.expenses, scoped.budgets)

    return report_cache.get_or_compute(project_id, dataset, compute)


@router.post("/financial")
def financial_report(dataset: FinancialDataset, project_id: Optional[str] = None):
    """
    Analytics for the given records, optionally scoped to a project id
    (or "unassigned" for records without a project).
    """
    project_id = _project_filter(project_id)
    report = _analyze(dataset, project_id)
    return {
        "project_id": project_id,
        "currency": dataset.for_project(project_id).primary_currency(),
        "analytics": report.to_dict(),
        "health": financial_health(report).to_dict(),
    }


@router.post("/insights")
def insights_report(dataset: FinancialDataset, project_id: Optional[str] = None):
    project_id = _project_filter(project_id)
    report = _analyze(dataset, project_id)
    scoped = dataset.for_project(project_id)
    insights = insight_generator.generate(report, scoped.expenses, scoped.primary_currency())
    return {
        "project_id": project_id,
        "analytics": report.to_dict(),
        "health": financial_health(report).to_dict(),
        "insights": [insight.to_dict() for insight in insights],
    }


@router.post("/financial/pdf")
def financial_report_pdf(
    dataset: FinancialDataset,
    project_id: Optional[str] = None,
    title: str = Query(default="Financial Report", max_length=120),
    include_insights: bool = False,
):
    """
    Render the financial report as a PDF. Streams the document back unless
    S3 uploads are enabled, in which case the download link is returned.
    """
    project_id = _project_filter(project_id)
    try:
        report = _analyze(dataset, project_id)
        scoped = dataset.for_project(project_id)
        currency = scoped.primary_currency()
        insights = insight_generator.generate(report, scoped.expenses, currency) if include_insights else None

        try:
            pdf_bytes = pdf_report.build_financial_report_pdf(report, title, currency, insights)
        except Exception as e:
            logger.error(f"Error generating PDF: {str(e)}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to generate PDF report")

        filename = pdf_report.report_filename(title, "pdf")
        if settings.REPORTS_UPLOAD_TO_S3:
            key = f"reports/{project_id or 'all'}/{uuid.uuid4().hex[:8]}_{filename}"
            pdf_url = pdf_report.upload_report(pdf_bytes, key)
            if not pdf_url:
                raise HTTPException(status_code=500, detail="Failed to upload PDF report")
            logger.info(f"PDF uploaded: {pdf_url}")
            return {"pdf_report_url": pdf_url}

        return Response(
            content=pdf_bytes,
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error exporting report: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@router.post("/financial/csv")
def financial_report_csv(dataset: FinancialDataset, project_id: Optional[str] = None):
    project_id = _project_filter(project_id)
    report = _analyze(dataset, project_id)
    filename = pdf_report.report_filename("Category Breakdown", "csv")
    return Response(
        content=pdf_report.build_category_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/cache")
def invalidate_cache(project_id: Optional[str] = None) -> Dict:
    project_id = _project_filter(project_id)
    removed = report_cache.invalidate(project_id)
    return {"invalidated": removed}
