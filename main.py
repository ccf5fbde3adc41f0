from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from inventoryreport.adapters.images import file_to_data_url
from inventoryreport.editing import add_item_images_as_pairs
from inventoryreport.exceptions import InventoryReportError
from inventoryreport.library import (
    add_report,
    clear_drafts,
    delete_draft,
    delete_report,
    get_report,
    list_drafts,
    search_reports,
    update_report,
)
from inventoryreport.runner import build_vision_provider, export_report_pdf, generate_report
from inventoryreport.templates import get_template, search_templates
from inventoryreport.types import Report, SourceImage


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _error(message: str) -> int:
    _print_json({'status': 'error', 'message': message})
    return 2


def _report_summary(report: Report) -> dict:
    return {
        'report_id': report.id,
        'title': report.title,
        'date': report.date,
        'address': report.property.address,
        'property_type': report.property.type,
        'item_count': len(report.items),
        'pair_count': len(report.property.image_response_pairs),
    }


def cmd_generate(args: argparse.Namespace) -> int:
    images: list[SourceImage] = []
    for raw in args.image or []:
        path = Path(raw).expanduser().resolve()
        if not path.exists() or not path.is_file():
            return _error(f'Image not found: {path}')
        images.append(SourceImage(data_url=file_to_data_url(path), name=path.name))

    template = None
    if args.template:
        template = get_template(args.template)
        if template is None:
            return _error(f'Template not found: {args.template}')

    try:
        report = asyncio.run(
            generate_report(args.prompt or '', images, provider=build_vision_provider(), template=template)
        )
    except ValueError as exc:
        return _error(str(exc))

    stored = add_report(report)
    payload = {'status': 'ok', **_report_summary(stored)}
    if args.output:
        try:
            payload['pdf_path'] = str(export_report_pdf(stored, Path(args.output).expanduser()))
        except InventoryReportError as exc:
            return _error(str(exc))
    _print_json(payload)
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    report = get_report(args.report_id)
    if report is None:
        return _error(f'Report not found: {args.report_id}')

    output = Path(args.output).expanduser() if args.output else None
    try:
        path = export_report_pdf(report, output, fetch_remote_images=args.fetch_remote)
    except InventoryReportError as exc:
        return _error(str(exc))
    _print_json({'status': 'ok', 'report_id': report.id, 'pdf_path': str(path)})
    return 0


def cmd_library_list(args: argparse.Namespace) -> int:
    reports = search_reports(args.search or '')
    _print_json({'reports': [_report_summary(report) for report in reports]})
    return 0


def cmd_library_show(args: argparse.Namespace) -> int:
    report = get_report(args.report_id)
    if report is None:
        return _error(f'Report not found: {args.report_id}')
    _print_json(report.to_json_payload())
    return 0


def cmd_library_delete(args: argparse.Namespace) -> int:
    if not delete_report(args.report_id):
        return _error(f'Report not found: {args.report_id}')
    _print_json({'status': 'ok', 'deleted': args.report_id})
    return 0


def cmd_drafts_list(args: argparse.Namespace) -> int:
    _print_json(
        {
            'drafts': [
                {
                    'draft_id': draft.id,
                    'last_modified': draft.last_modified.isoformat(),
                    **_report_summary(draft.data),
                }
                for draft in list_drafts()
            ]
        }
    )
    return 0


def cmd_drafts_delete(args: argparse.Namespace) -> int:
    if not delete_draft(args.draft_id):
        return _error(f'Draft not found: {args.draft_id}')
    _print_json({'status': 'ok', 'deleted': args.draft_id})
    return 0


def cmd_drafts_clear(args: argparse.Namespace) -> int:
    clear_drafts()
    _print_json({'status': 'ok'})
    return 0


def cmd_templates_list(args: argparse.Namespace) -> int:
    _print_json(
        {
            'templates': [
                {
                    'id': template.id,
                    'name': template.name,
                    'category': template.category,
                    'description': template.description,
                    'is_custom': template.is_custom,
                    'item_count': len(template.fields.default_items),
                }
                for template in search_templates(args.search or '')
            ]
        }
    )
    return 0


def cmd_pairs_from_items(args: argparse.Namespace) -> int:
    report = get_report(args.report_id)
    if report is None:
        return _error(f'Report not found: {args.report_id}')

    updated, added = add_item_images_as_pairs(report)
    if added == 0:
        return _error('No items have both an image and an analysis')
    update_report(updated)
    _print_json({'status': 'ok', 'report_id': updated.id, 'pairs_added': added})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Property inventory report builder')
    parser.add_argument('--log-level', default='WARNING', help='Python logging level')
    sub = parser.add_subparsers(dest='command', required=True)

    generate = sub.add_parser('generate', help='Generate a report from a prompt and photos')
    generate.add_argument('--prompt', required=False, help='Context for the photo analysis')
    generate.add_argument('--image', action='append', help='Photo path; repeat for several photos')
    generate.add_argument('--template', required=False, help='Template ID')
    generate.add_argument('--output', required=False, help='Also export the PDF to this path')
    generate.set_defaults(func=cmd_generate)

    export = sub.add_parser('export', help='Export a stored report as PDF')
    export.add_argument('--report-id', required=True, help='Report ID')
    export.add_argument('--output', required=False, help='Output PDF path')
    export.add_argument('--fetch-remote', action='store_true', help='Download http(s) photos before export')
    export.set_defaults(func=cmd_export)

    library = sub.add_parser('library', help='Stored reports')
    library_sub = library.add_subparsers(dest='library_command', required=True)
    library_list = library_sub.add_parser('list', help='List stored reports')
    library_list.add_argument('--search', required=False, help='Filter by title, address or type')
    library_list.set_defaults(func=cmd_library_list)
    library_show = library_sub.add_parser('show', help='Print a stored report as JSON')
    library_show.add_argument('--report-id', required=True)
    library_show.set_defaults(func=cmd_library_show)
    library_delete = library_sub.add_parser('delete', help='Delete a stored report')
    library_delete.add_argument('--report-id', required=True)
    library_delete.set_defaults(func=cmd_library_delete)

    drafts = sub.add_parser('drafts', help='Saved drafts')
    drafts_sub = drafts.add_subparsers(dest='drafts_command', required=True)
    drafts_list = drafts_sub.add_parser('list', help='List drafts, newest first')
    drafts_list.set_defaults(func=cmd_drafts_list)
    drafts_delete = drafts_sub.add_parser('delete', help='Delete a draft')
    drafts_delete.add_argument('--draft-id', required=True)
    drafts_delete.set_defaults(func=cmd_drafts_delete)
    drafts_clear = drafts_sub.add_parser('clear', help='Delete all drafts')
    drafts_clear.set_defaults(func=cmd_drafts_clear)

    templates = sub.add_parser('templates', help='Report templates')
    templates_sub = templates.add_subparsers(dest='templates_command', required=True)
    templates_list = templates_sub.add_parser('list', help='List templates')
    templates_list.add_argument('--search', required=False, help='Filter by name, description or category')
    templates_list.set_defaults(func=cmd_templates_list)

    pairs = sub.add_parser('pairs-from-items', help='Add property photos from analysed items')
    pairs.add_argument('--report-id', required=True, help='Report ID')
    pairs.set_defaults(func=cmd_pairs_from_items)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    try:
        return int(args.func(args))
    except (InventoryReportError, ValueError) as exc:
        return _error(str(exc))


if __name__ == '__main__':
    raise SystemExit(main())
