"""Tests for formatting and logging helpers."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from lumen.core.credentials import CredentialStore
from lumen.utils.formatting import format_bytes, format_date, parse_timestamp
from lumen.utils.log import StructuredFormatter, init_logger, mask_secret


def test_format_bytes() -> None:
    assert format_bytes(None) == ""
    assert format_bytes(512) == "512 Bytes"
    assert format_bytes(2048) == "2.00 KB"
    assert format_bytes(4661224676) == "4.34 GB"


def test_format_date() -> None:
    assert format_date(None) == ""
    assert format_date(datetime(2024, 5, 1, 10, 0)) == "2024-05-01"


def test_parse_timestamp_variants() -> None:
    nanos = parse_timestamp("2024-05-01T10:11:12.123456789-07:00")
    assert nanos == datetime(2024, 5, 1, 10, 11, 12, 123456, tzinfo=timezone(timedelta(hours=-7)))
    assert parse_timestamp("2024-06-02T08:00:00Z") == datetime(2024, 6, 2, 8, tzinfo=timezone.utc)
    assert parse_timestamp("2024-06-02T08:00:00.5Z").microsecond == 500000
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(1714557072) is None


def test_structured_formatter_appends_extra_fields() -> None:
    record = logging.LogRecord("lumen", logging.INFO, __file__, 1, "[cloud] Listed", (), None)
    record.provider = "openai"
    line = StructuredFormatter("%(levelname)s %(message)s").format(record)
    assert line.startswith("INFO [cloud] Listed | ")
    assert '"provider": "openai"' in line


def test_file_handler_writes_structured_lines(tmp_path) -> None:
    logger = init_logger(tmp_path)
    logger.info("[test] Hello", extra={"count": 3})
    file_handler = logger._file_handler
    file_handler.flush()
    try:
        files = list(tmp_path.glob("lumen_*.log"))
        assert len(files) == 1
        assert '[test] Hello | {"count": 3}' in files[0].read_text(encoding="utf-8")
    finally:
        logger.logger.removeHandler(file_handler)
        file_handler.close()
        logger._file_handler = None


def test_structured_formatter_masks_secret_fields() -> None:
    record = logging.LogRecord("lumen", logging.DEBUG, __file__, 1, "[cloud] Listing models", (), None)
    record.provider = "openai"
    record.api_key = "sk-test-abcdef123456"
    record.key = "sk-ant-test-key-9999"
    record.secret = "short"
    line = StructuredFormatter("%(message)s").format(record)
    assert "sk-test-abcdef123456" not in line
    assert "sk-ant-test-key-9999" not in line
    assert '"api_key": "****3456"' in line
    assert '"key": "****9999"' in line
    assert '"secret": "****"' in line
    assert '"provider": "openai"' in line


def test_mask_secret_leaves_masked_values_alone() -> None:
    assert mask_secret(mask_secret("sk-test-abcdef123456")) == "****3456"


def test_saved_key_never_reaches_the_log_file(tmp_path) -> None:
    logger = init_logger(tmp_path / "logs")
    file_handler = logger._file_handler
    try:
        CredentialStore(tmp_path / "credentials.json").save("openai", "sk-test-abcdef123456")
        file_handler.flush()
        text = next((tmp_path / "logs").glob("lumen_*.log")).read_text(encoding="utf-8")
        assert "****3456" in text
        assert "sk-test-abcdef123456" not in text
    finally:
        logger.logger.removeHandler(file_handler)
        file_handler.close()
        logger._file_handler = None
