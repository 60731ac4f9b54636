from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Mapping

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen.canvas import Canvas

from surveyreport.adapters.image_fetcher import ImageFetchConfig, ImageFetcher
from surveyreport.config import get_settings
from surveyreport.report import styles
from surveyreport.report.card_renderer import CardImages, CardRenderer
from surveyreport.report.layout import (
    HEADER_DATE_Y_MM,
    HEADER_RULE_Y_MM,
    HEADER_TITLE_Y_MM,
    MARGIN_X_MM,
    PAGE_WIDTH_MM,
    PageGeometry,
    PaginationController,
    pt_x,
    pt_y,
)
from surveyreport.storage import write_bytes_atomic
from surveyreport.types import SurveyRecord


logger = logging.getLogger(__name__)

DATE_FORMAT = '%Y-%m-%d'


@dataclass(frozen=True)
class Placement:
    index: int
    page: int
    offset: float


@dataclass
class SurveyReport:
    pdf_bytes: bytes
    filename: str
    page_count: int
    generated_at: datetime
    placements: list[Placement] = field(default_factory=list)


def report_filename(generated_at: datetime) -> str:
    return f'survey_report_{generated_at.strftime(DATE_FORMAT)}.pdf'


def coerce_records(records: Iterable[SurveyRecord | Mapping[str, Any]]) -> list[SurveyRecord]:
    items: list[SurveyRecord] = []
    for item in records:
        if isinstance(item, SurveyRecord):
            items.append(item)
        else:
            items.append(SurveyRecord.model_validate(dict(item)))
    return items


def build_image_fetcher() -> ImageFetcher:
    settings = get_settings()
    return ImageFetcher(
        ImageFetchConfig(
            timeout_seconds=settings.image_fetch_timeout_seconds,
            follow_redirects=settings.image_follow_redirects,
            user_agent=settings.image_user_agent,
            jpeg_quality=settings.image_jpeg_quality,
        )
    )


def _draw_header(canvas: Canvas, *, title: str, generated_at: datetime) -> None:
    styles.TITLE.apply(canvas)
    canvas.drawString(pt_x(MARGIN_X_MM), pt_y(HEADER_TITLE_Y_MM), title)

    styles.GENERATED_ON.apply(canvas)
    canvas.drawString(
        pt_x(MARGIN_X_MM),
        pt_y(HEADER_DATE_Y_MM),
        f'Generated on: {generated_at.strftime(DATE_FORMAT)}',
    )

    styles.HEADER_RULE.apply(canvas)
    canvas.line(
        pt_x(MARGIN_X_MM),
        pt_y(HEADER_RULE_Y_MM),
        pt_x(PAGE_WIDTH_MM - MARGIN_X_MM),
        pt_y(HEADER_RULE_Y_MM),
    )


async def generate_survey_report(
    records: Iterable[SurveyRecord | Mapping[str, Any]],
    *,
    fetcher: ImageFetcher | None = None,
    generated_at: datetime | None = None,
    title: str | None = None,
    geometry: PageGeometry | None = None,
) -> SurveyReport:
    """Render survey records into a paginated PDF of fixed-size cards.

    Records are processed strictly one after another: the canvas and the
    page cursor are shared, so only the three image loads of a single
    record run concurrently. Any error outside image loading and embedding
    aborts the whole report.
    """
    items = coerce_records(records)
    generated_at = generated_at or datetime.now()
    settings = get_settings()
    title = title or settings.report_title

    owns_fetcher = fetcher is None
    if fetcher is None:
        fetcher = build_image_fetcher()

    logger.info('Generating survey report for %d record(s)', len(items))

    buffer = io.BytesIO()
    pdf = Canvas(buffer, pagesize=A4, invariant=1)
    pdf.setTitle(title)
    pdf.setSubject('Survey records')
    pdf.setAuthor(settings.report_author)

    def _page_break() -> None:
        pdf.showPage()
        logger.debug('Page break before card %d', len(placements) + 1)

    placements: list[Placement] = []
    pagination = PaginationController(geometry=geometry or PageGeometry(), on_page_break=_page_break)
    renderer = CardRenderer(pdf)

    try:
        _draw_header(pdf, title=title, generated_at=generated_at)

        for index, record in enumerate(items):
            slot = pagination.reserve_slot()
            citizen, operator, coordinator = await fetcher.fetch_all(
                record.citizen_image,
                record.operator().image_url,
                record.coordinator().image_url,
            )
            renderer.draw(
                record,
                CardImages(citizen=citizen, operator=operator, coordinator=coordinator),
                slot.offset,
            )
            placements.append(Placement(index=index, page=slot.page, offset=slot.offset))
            pagination.advance()
    finally:
        if owns_fetcher:
            await fetcher.aclose()

    pdf.showPage()
    pdf.save()

    report = SurveyReport(
        pdf_bytes=buffer.getvalue(),
        filename=report_filename(generated_at),
        page_count=pagination.page_count,
        generated_at=generated_at,
        placements=placements,
    )
    logger.info('Survey report %s ready: %d page(s)', report.filename, report.page_count)
    return report


def build_survey_report(records: Iterable[SurveyRecord | Mapping[str, Any]], **kwargs: Any) -> SurveyReport:
    return asyncio.run(generate_survey_report(records, **kwargs))


def save_survey_report(report: SurveyReport, output_dir: Path | None = None) -> Path:
    target_dir = output_dir if output_dir is not None else get_settings().output_dir
    path = Path(target_dir) / report.filename
    write_bytes_atomic(path, report.pdf_bytes)
    logger.info('Saved survey report to %s', path)
    return path
