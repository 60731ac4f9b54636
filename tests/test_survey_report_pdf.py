from __future__ import annotations

import asyncio
import io
from datetime import datetime

import httpx
import pytest
from pypdf import PdfReader

from conftest import mock_fetcher, png_bytes
from surveyreport.config import get_settings
from surveyreport.report.layout import TOP_MARGIN_MM, PageGeometry
from surveyreport.report.survey_report_pdf import (
    build_survey_report,
    generate_survey_report,
    report_filename,
    save_survey_report,
)
from surveyreport.types import ImageAsset


GENERATED_AT = datetime(2026, 10, 19, 9, 30)


def _pages_text(report) -> list[str]:
    reader = PdfReader(io.BytesIO(report.pdf_bytes))
    return [page.extract_text() or '' for page in reader.pages]


def _records(count: int) -> list[dict]:
    return [{'name': f'Citizen {index:02d}', 'mobile': f'90000000{index:02d}'} for index in range(count)]


def test_empty_list_yields_header_page_only():
    report = build_survey_report([], generated_at=GENERATED_AT)

    pages = _pages_text(report)
    assert report.page_count == 1
    assert len(pages) == 1
    assert report.placements == []
    assert 'Survey Data Report' in pages[0]
    assert 'Generated on: 2026-10-19' in pages[0]
    assert 'No Image' not in pages[0]


def test_single_record_without_images_uses_defaults():
    report = build_survey_report([{}], generated_at=GENERATED_AT)

    text = _pages_text(report)[0]
    assert report.page_count == 1
    assert 'Unknown Citizen' in text
    assert 'No Image' in text
    assert 'Mobile: N/A' in text
    assert 'Date: N/A' in text
    assert 'Zone: N/A' in text
    assert 'FIELD OPERATOR (OT)' in text
    assert 'ZONAL COORDINATOR (ZC)' in text


def test_overflow_card_lands_first_on_page_two():
    geometry = PageGeometry()
    first_page = geometry.capacity(geometry.first_offset)

    report = build_survey_report(_records(first_page + 1), generated_at=GENERATED_AT)

    pages = _pages_text(report)
    assert report.page_count == 2
    assert len(pages) == 2
    last = report.placements[-1]
    assert (last.page, last.offset) == (2, TOP_MARGIN_MM)
    assert f'Citizen {first_page:02d}' in pages[1]
    assert 'Survey Data Report' not in pages[1]
    assert 'Generated on' not in pages[1]


def test_cards_keep_input_order_across_pages():
    records = _records(8)
    report = build_survey_report(records, generated_at=GENERATED_AT)

    assert [placement.index for placement in report.placements] == list(range(8))
    assert report.page_count == PageGeometry().pages_needed(8)

    seen = []
    for page_number, text in enumerate(_pages_text(report), start=1):
        on_page = [p.index for p in report.placements if p.page == page_number]
        positions = [text.index(f'Citizen {index:02d}') for index in on_page]
        assert positions == sorted(positions)
        seen.extend(on_page)
    assert seen == list(range(8))


def test_page_count_matches_closed_form():
    geometry = PageGeometry()
    for count in (0, 1, 3, 4, 6, 7, 10):
        report = build_survey_report(_records(count), generated_at=GENERATED_AT)
        assert report.page_count == geometry.pages_needed(count)
        assert len(PdfReader(io.BytesIO(report.pdf_bytes)).pages) == report.page_count


def test_remote_images_are_embedded():
    routes = {
        'https://img.example/c.png': httpx.Response(200, content=png_bytes((200, 0, 0))),
        'https://img.example/o.png': httpx.Response(200, content=png_bytes((0, 200, 0))),
        'https://img.example/z.png': httpx.Response(200, content=png_bytes((0, 0, 200))),
    }
    record = {
        'name': 'Sumon',
        'citizen_image': 'https://img.example/c.png',
        'otProfile': 'https://img.example/o.png',
        'zcProfile': 'https://img.example/z.png',
    }

    report = build_survey_report([record], fetcher=mock_fetcher(routes), generated_at=GENERATED_AT)

    reader = PdfReader(io.BytesIO(report.pdf_bytes))
    assert len(reader.pages[0].images) == 3
    assert 'No Image' not in reader.pages[0].extract_text()


def test_failed_images_never_abort_generation():
    routes = {
        'https://img.example/c.png': httpx.Response(500),
        'https://img.example/o.png': httpx.ConnectError('connection reset'),
        'https://img.example/z.png': httpx.Response(200, content=b'garbage'),
    }
    record = {
        'name': 'Sumon',
        'citizen_image': 'https://img.example/c.png',
        'otProfile': 'https://img.example/o.png',
        'ot_parent_profile': 'https://img.example/z.png',
    }

    report = build_survey_report([record, record], fetcher=mock_fetcher(routes), generated_at=GENERATED_AT)

    text = _pages_text(report)[0]
    assert text.count('No Image') == 2
    assert text.count('Sumon') == 2


def test_identical_inputs_produce_identical_documents():
    records = _records(5)

    first = build_survey_report(records, generated_at=GENERATED_AT)
    second = build_survey_report(records, generated_at=GENERATED_AT)
    later = build_survey_report(records, generated_at=datetime(2026, 10, 20, 9, 30))

    assert first.pdf_bytes == second.pdf_bytes
    assert first.placements == later.placements
    assert first.page_count == later.page_count
    assert later.filename == 'survey_report_2026-10-20.pdf'


def test_filename_embeds_generation_date():
    assert report_filename(GENERATED_AT) == 'survey_report_2026-10-19.pdf'
    assert build_survey_report([], generated_at=GENERATED_AT).filename == 'survey_report_2026-10-19.pdf'


def test_title_override():
    report = build_survey_report([], generated_at=GENERATED_AT, title='Goreshwar Field Survey')

    assert 'Goreshwar Field Survey' in _pages_text(report)[0]


def test_records_are_processed_one_at_a_time():
    events = []

    class RecordingFetcher:
        async def fetch_all(self, *urls):
            events.append('start')
            await asyncio.sleep(0)
            events.append('end')
            return [ImageAsset.absent(url, 'missing_url') for url in urls]

    report = asyncio.run(
        generate_survey_report(_records(4), fetcher=RecordingFetcher(), generated_at=GENERATED_AT)
    )

    assert events == ['start', 'end'] * 4
    assert len(report.placements) == 4


def test_fetch_error_outside_image_handling_aborts_report():
    class BrokenFetcher:
        async def fetch_all(self, *urls):
            raise RuntimeError('event loop torn down')

    with pytest.raises(RuntimeError):
        asyncio.run(generate_survey_report(_records(1), fetcher=BrokenFetcher(), generated_at=GENERATED_AT))


def test_save_writes_single_artifact(tmp_path):
    report = build_survey_report(_records(2), generated_at=GENERATED_AT)

    path = save_survey_report(report, tmp_path)

    assert path == tmp_path / 'survey_report_2026-10-19.pdf'
    assert path.read_bytes() == report.pdf_bytes
    assert sorted(p.name for p in tmp_path.iterdir()) == ['survey_report_2026-10-19.pdf']


def test_save_defaults_to_configured_output_dir(tmp_path):
    report = build_survey_report([], generated_at=GENERATED_AT)

    path = save_survey_report(report)

    assert path.parent == tmp_path / 'reports'
    assert path.exists()


def test_save_failure_propagates(tmp_path):
    blocker = tmp_path / 'not-a-dir'
    blocker.write_text('occupied', encoding='utf-8')
    report = build_survey_report([], generated_at=GENERATED_AT)

    with pytest.raises(OSError):
        save_survey_report(report, blocker)


def test_malformed_record_values_still_render():
    records = [{'name': 'Sumon', 'mobile': True}, {'name': 'Bikram', 'zoneName': {'id': 3}, 'otName': [1, 2]}]

    report = build_survey_report(records, generated_at=GENERATED_AT)

    text = _pages_text(report)[0]
    assert len(report.placements) == 2
    assert 'Mobile: True' in text
    assert 'Zone: N/A' in text


def test_in_memory_build_creates_no_output_dir(tmp_path):
    get_settings()
    build_survey_report(_records(1), generated_at=GENERATED_AT)

    assert not (tmp_path / 'reports').exists()
