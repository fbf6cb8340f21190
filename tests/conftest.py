# Shared pytest fixtures
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

import pytest

from cnic_merge.logging.init import LOGGER_NAME, reset_logging
from tests.builders import client_row, client_table, guarantor_row, guarantor_table, workbook_bytes


@pytest.fixture(autouse=True)
def clean_logging():
    reset_logging()
    yield
    # drop handlers bound to captured streams of this test
    package_logger = logging.getLogger(LOGGER_NAME)
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """guarantor_columns:
  cnic: 3
  address: 6
  loan_amount: 8
  loan_cycle: 10
  name: 14
  cell: 16
client_columns:
  client_id: 1
  cnic: 13
guarantor_start_row: 2
client_start_row: 2
yield_every: 500
output_file_name: Updated Guarantor Info.xlsx
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "merge.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def report_files(temp_workdir: Path) -> tuple[Path, Path]:
    """Guarantor / active client workbooks with one match and one miss."""
    g = temp_workdir / "data" / "report24.xlsx"
    c = temp_workdir / "data" / "report12.xlsx"
    g.write_bytes(
        workbook_bytes(
            guarantor_table(
                guarantor_row("12345-6789012-3", cycle=2, name="Ali Guarantor", address="12 Mall Road"),
                guarantor_row("99999-9999999-9", name="Other Guarantor"),
            )
        )
    )
    c.write_bytes(
        workbook_bytes(
            client_table(
                client_row("1234567890123", client_id="CL001", name="Sana"),
                client_row("1111111111111", client_id="CL002", name="Unmatched"),
            )
        )
    )
    return g, c


@pytest.fixture()
def no_env_db(monkeypatch):
    for key in ("DATABASE_URL", "PGDSN", "PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE"):
        monkeypatch.delenv(key, raising=False)
    yield os.environ
