from __future__ import annotations

from inventoryreport.config import Settings
from inventoryreport.report.fonts import font_available, resolve_report_fonts


def test_default_fonts_are_builtin() -> None:
    fonts = resolve_report_fonts(Settings())
    assert (fonts.regular, fonts.bold) == ('Helvetica', 'Helvetica-Bold')
    assert font_available('Helvetica')
    assert not font_available('')


def test_unloadable_font_file_falls_back(tmp_path) -> None:
    broken = tmp_path / 'broken.ttf'
    broken.write_bytes(b'not a font')
    settings = Settings(pdf_font_name='BrokenSans', pdf_font_path=broken)

    fonts = resolve_report_fonts(settings)

    assert fonts.regular == 'Helvetica'
    assert fonts.bold == 'Helvetica-Bold'
