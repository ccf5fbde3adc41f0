from __future__ import annotations

import pytest

from inventoryreport.config import get_settings


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Point every test at its own data directory and no vision credentials."""
    monkeypatch.setenv('DATA_DIR', str(tmp_path / 'data'))
    for name in ('OPENAI_API_KEY', 'API_KEY', 'LLM_API_KEY', 'BASE_URL', 'OPENAI_BASE_URL', 'LLM_BASE_URL'):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield tmp_path / 'data'
    get_settings.cache_clear()
