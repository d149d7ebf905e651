"""Shared test fixtures for healthfold tests."""

import logging
import zipfile

import pytest

from healthfold.archive import EXPORT_MEMBER

from helpers import HEART_RATE, health_data_xml


@pytest.fixture
def make_export(tmp_path):
    """Factory: write an export zip and return its path.

    ``xml`` goes to ``member`` (the standard export.xml path by default).
    ``payload`` writes raw bytes instead, for encoding tests.
    """
    counter = {"n": 0}

    def _make(xml: str | None = None, member: str = EXPORT_MEMBER, payload: bytes | None = None,
              extra_members: dict[str, str] | None = None,
              compression: int = zipfile.ZIP_DEFLATED) -> str:
        counter["n"] += 1
        path = tmp_path / f"export{counter['n']}.zip"
        with zipfile.ZipFile(path, "w", compression=compression) as zf:
            data = payload if payload is not None else (xml or "").encode("utf-8")
            zf.writestr(member, data)
            for name, content in (extra_members or {}).items():
                zf.writestr(name, content)
        return str(path)

    return _make


@pytest.fixture
def heart_rate_export(make_export):
    """An export with the single HeartRate record used in the README example."""
    return make_export(health_data_xml(HEART_RATE))


@pytest.fixture(autouse=True)
def reset_healthfold_logger():
    """Undo configure_logging() between tests so levels and handlers don't leak."""
    yield
    logger = logging.getLogger("healthfold")
    logger.setLevel(logging.NOTSET)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
