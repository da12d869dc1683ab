from pathlib import Path

import pytest

from welore_node.config import get_settings
from welore_node.mapping import MappingEngine
from welore_node.schema import SchemaLoader

FIXTURES = Path(__file__).parent / "fixtures"
ORIGIN = "https://api.welore.test"


@pytest.fixture
def schema_path() -> Path:
    return FIXTURES / "welore.yaml"


@pytest.fixture
def loader(schema_path) -> SchemaLoader:
    return SchemaLoader(schema_path)


@pytest.fixture
def engine(loader) -> MappingEngine:
    return MappingEngine(loader, ORIGIN)


@pytest.fixture
def settings_env(monkeypatch, schema_path):
    monkeypatch.setenv("WELORE_SCHEMA_PATH", str(schema_path))
    monkeypatch.setenv("WELORE_API_ORIGIN", ORIGIN)
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()
