"""Tests for the loguru sink setup used by run.py."""

import sys

from loguru import logger
import pytest

from blockevo.utils.logger_setup import setup_logger


@pytest.fixture
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_log_file_is_created_in_log_dir(tmp_path, restore_logger):
    log_file = setup_logger(log_dir=str(tmp_path / "logs"), level="INFO")

    assert log_file.parent == tmp_path / "logs"
    assert log_file.name.startswith("blockevo_")
    assert log_file.suffix == ".log"


def test_records_respect_level(tmp_path, restore_logger, capsys):
    log_file = setup_logger(log_dir=str(tmp_path), level="INFO")
    logger.debug("[Test] hidden detail")
    logger.info("[Test] generation {} done", 3)
    logger.remove()

    contents = log_file.read_text(encoding="utf-8")
    assert "[Test] generation 3 done" in contents
    assert "hidden detail" not in contents
    assert "[Test] generation 3 done" in capsys.readouterr().out
