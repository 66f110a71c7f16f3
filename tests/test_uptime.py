import io

import pytest

from horizonx.collectors.uptime import UptimeCollector
from horizonx.logger import Logger


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def log(log_stream):
    return Logger("debug", "text", log_stream)


def test_reads_first_field(tmp_path, log):
    (tmp_path / "uptime").write_text("12345.67 54321.00\n")
    assert UptimeCollector(log, tmp_path).collect() == 12345.67


@pytest.mark.parametrize("text", ["", "   \n"])
def test_empty_file_gives_zero(tmp_path, log, log_stream, text):
    (tmp_path / "uptime").write_text(text)
    assert UptimeCollector(log, tmp_path).collect() == 0.0
    assert "/proc/uptime is empty" in log_stream.getvalue()


def test_missing_file_raises(tmp_path, log, log_stream):
    with pytest.raises(FileNotFoundError):
        UptimeCollector(log, tmp_path).collect()
    assert "failed to read /proc/uptime" in log_stream.getvalue()


def test_garbage_raises(tmp_path, log, log_stream):
    (tmp_path / "uptime").write_text("abc 1.0\n")
    with pytest.raises(ValueError):
        UptimeCollector(log, tmp_path).collect()
    assert "failed to parse uptime" in log_stream.getvalue()


def test_reads_fresh_value_each_time(tmp_path, log):
    collector = UptimeCollector(log, tmp_path)
    (tmp_path / "uptime").write_text("10.5 1.0\n")
    first = collector.collect()
    (tmp_path / "uptime").write_text("20.25 2.0\n")
    second = collector.collect()
    assert (first, second) == (10.5, 20.25)