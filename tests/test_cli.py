from __future__ import annotations

import json

from builders import make_item, make_report, png_bytes, png_url

from inventoryreport import library
from main import main


def _run(capsys, *argv: str) -> tuple[int, dict]:
    code = main(list(argv))
    return code, json.loads(capsys.readouterr().out)


def test_generate_without_credentials_still_builds_report(tmp_path, capsys) -> None:
    photo = tmp_path / 'room.png'
    photo.write_bytes(png_bytes())
    output = tmp_path / 'report.pdf'

    code, payload = _run(capsys, 'generate', '--prompt', 'Lounge', '--image', str(photo), '--output', str(output))

    assert code == 0
    assert payload['item_count'] == 1
    assert output.exists()
    stored = library.get_report(payload['report_id'])
    assert stored.items[0].ai_analysis is None


def test_generate_rejects_missing_image(tmp_path, capsys) -> None:
    code, payload = _run(capsys, 'generate', '--image', str(tmp_path / 'nope.jpg'))
    assert code == 2
    assert payload['status'] == 'error'


def test_generate_rejects_empty_input(capsys) -> None:
    code, payload = _run(capsys, 'generate')
    assert code == 2
    assert 'prompt' in payload['message']


def test_generate_with_unknown_template(capsys) -> None:
    code, payload = _run(capsys, 'generate', '--prompt', 'x', '--template', 'no-such-template')
    assert code == 2


def test_library_commands(capsys) -> None:
    stored = library.add_report(make_report(title='Lodge'))

    code, payload = _run(capsys, 'library', 'list', '--search', 'lodge')
    assert code == 0
    assert [row['report_id'] for row in payload['reports']] == [stored.id]

    code, payload = _run(capsys, 'library', 'show', '--report-id', stored.id)
    assert payload['title'] == 'Lodge'
    assert 'imageResponsePairs' in payload['property']

    code, payload = _run(capsys, 'library', 'delete', '--report-id', stored.id)
    assert code == 0
    code, payload = _run(capsys, 'library', 'delete', '--report-id', stored.id)
    assert code == 2


def test_export_command(tmp_path, capsys) -> None:
    stored = library.add_report(make_report())
    output = tmp_path / 'export.pdf'

    code, payload = _run(capsys, 'export', '--report-id', stored.id, '--output', str(output))

    assert code == 0
    assert payload['pdf_path'] == str(output)
    assert output.read_bytes().startswith(b'%PDF')

    code, payload = _run(capsys, 'export', '--report-id', 'report-missing')
    assert code == 2


def test_drafts_commands(capsys) -> None:
    draft_id = library.save_draft(make_report())

    code, payload = _run(capsys, 'drafts', 'list')
    assert [row['draft_id'] for row in payload['drafts']] == [draft_id]

    code, payload = _run(capsys, 'drafts', 'delete', '--draft-id', draft_id)
    assert code == 0
    code, payload = _run(capsys, 'drafts', 'clear')
    assert code == 0
    assert library.list_drafts() == []


def test_templates_list(capsys) -> None:
    code, payload = _run(capsys, 'templates', 'list', '--search', 'maintenance')
    assert code == 0
    assert [row['id'] for row in payload['templates']] == ['maintenance-checklist']


def test_pairs_from_items(capsys) -> None:
    stored = library.add_report(make_report(items=[make_item('Sofa', images=[png_url()], analysis='Fine')]))

    code, payload = _run(capsys, 'pairs-from-items', '--report-id', stored.id)

    assert code == 0
    assert payload['pairs_added'] == 1
    assert library.get_report(stored.id).property.image_response_pairs[0].response == 'Fine'

    bare = library.add_report(make_report())
    code, payload = _run(capsys, 'pairs-from-items', '--report-id', bare.id)
    assert code == 2


def test_malformed_ids_report_json_errors(capsys) -> None:
    for argv in (
        ('library', 'show', '--report-id', 'bad id'),
        ('library', 'delete', '--report-id', 'bad id'),
        ('export', '--report-id', 'bad id'),
        ('pairs-from-items', '--report-id', 'bad id'),
        ('drafts', 'delete', '--draft-id', 'bad id'),
    ):
        code, payload = _run(capsys, *argv)
        assert code == 2
        assert payload['status'] == 'error'
