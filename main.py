from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path

from surveyreport.config import get_settings
from surveyreport.report.layout import PageGeometry, plan_pages
from surveyreport.report.survey_report_pdf import build_survey_report, save_survey_report
from surveyreport.storage import load_records


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _configure_logging() -> None:
    level = getattr(logging, str(get_settings().log_level).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def _read_input(raw_path: str):
    path = Path(raw_path).expanduser().resolve()
    if not path.exists() or not path.is_file():
        _print_json({'status': 'error', 'message': f'Input not found: {path}'})
        return None
    try:
        return load_records(path)
    except ValueError as exc:
        _print_json({'status': 'error', 'message': str(exc)})
        return None


def _parse_date(value: str) -> datetime:
    try:
        return datetime.strptime(value, '%Y-%m-%d')
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f'expected YYYY-MM-DD, got {value!r}') from exc


def cmd_generate(args: argparse.Namespace) -> int:
    records = _read_input(args.input)
    if records is None:
        return 2

    report = build_survey_report(records, generated_at=args.date, title=args.title)
    output_dir = Path(args.output_dir).expanduser() if args.output_dir else None
    path = save_survey_report(report, output_dir)

    _print_json(
        {
            'status': 'completed',
            'report_pdf_path': str(path),
            'filename': report.filename,
            'record_count': len(records),
            'page_count': report.page_count,
        }
    )
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    records = _read_input(args.input)
    if records is None:
        return 2

    geometry = PageGeometry()
    slots = plan_pages(len(records), geometry)
    _print_json(
        {
            'record_count': len(records),
            'page_count': geometry.pages_needed(len(records)),
            'cards': [
                {
                    'index': index,
                    'name': record.display('name'),
                    'page': slot.page,
                    'offset_mm': slot.offset,
                }
                for index, (record, slot) in enumerate(zip(records, slots))
            ],
        }
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Survey data PDF report generator')
    sub = parser.add_subparsers(dest='command', required=True)

    generate = sub.add_parser('generate', help='Render survey records into a PDF report')
    generate.add_argument('--input', required=True, help='Path to a JSON file with survey records')
    generate.add_argument('--output-dir', required=False, help='Directory for the generated PDF')
    generate.add_argument('--title', required=False, help='Optional report title override')
    generate.add_argument('--date', type=_parse_date, required=False, help='Generation date (YYYY-MM-DD)')
    generate.set_defaults(func=cmd_generate)

    plan = sub.add_parser('plan', help='Show which page each card lands on, without fetching images')
    plan.add_argument('--input', required=True, help='Path to a JSON file with survey records')
    plan.set_defaults(func=cmd_plan)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging()
    return int(args.func(args))


if __name__ == '__main__':
    raise SystemExit(main())
