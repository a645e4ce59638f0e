import logging
import os
import pathlib
import sys
import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import sneakerchain`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from sneakerchain.access import RoleBook  # noqa: E402
from sneakerchain.config import ConfigManager  # noqa: E402
from sneakerchain.metadata import StaticMetadataProvider  # noqa: E402
from sneakerchain.observability import ROOT_LOGGER_NAME, StructuredHandler  # noqa: E402
from sneakerchain.ownership import SneakerOwnership  # noqa: E402


ADMIN = "0x" + "a" * 40
ALICE = "0x" + "1" * 40
BOB = "0x" + "2" * 40
CAROL = "0x" + "3" * 40
DAVE = "0x" + "4" * 40
CONTRACT = "0x0000000000000000000000000000000000005ea4"


def sneaker_fields(ticker: str = "JB-JO1RHRSBG", **overrides):
    """Keyword fields for one mint."""
    fields = {
        "brand": "JORDAN",
        "name": "Air Jordan 1 Retro High OG",
        "size": 105,
        "style_code": "555088-063",
        "colorway": "Shadow",
        "retail_price": 17000,
        "manufactured_at": 1514764800,
        "released_at": 1523059200,
        "ticker": ticker,
    }
    fields.update(overrides)
    return fields


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: slow correctness tests (skipped unless SNEAKERCHAIN_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    run_slow = _env_flag('SNEAKERCHAIN_RUN_SLOW')

    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set SNEAKERCHAIN_RUN_SLOW=1 to enable'))


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Fresh config singleton, no SNEAKERCHAIN_* overrides, no leftover log handlers."""
    for name in list(os.environ):
        if name.startswith("SNEAKERCHAIN_") and name != "SNEAKERCHAIN_RUN_SLOW":
            monkeypatch.delenv(name)
    ConfigManager._instance = None
    yield
    ConfigManager._instance = None
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        if isinstance(handler, StructuredHandler):
            root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


@pytest.fixture
def role_book():
    return RoleBook(owner=ADMIN)


@pytest.fixture
def provider():
    return StaticMetadataProvider("meta.example.com/sneaker")


@pytest.fixture
def registry(role_book, provider):
    """Empty registry administered by ADMIN."""
    return SneakerOwnership(role_book, metadata_provider=provider)


@pytest.fixture
def minted(registry):
    """Registry holding token 1 (owned by ALICE)."""
    registry.mint(ADMIN, ALICE, **sneaker_fields())
    return registry
