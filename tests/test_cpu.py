import io

import pytest

from horizonx.collectors.cpu import CpuCollector, CpuStat, calculate_usage, parse_cpu_stat
from horizonx.ema import EMA
from horizonx.logger import Logger

STAT_1 = (
    "cpu  100 0 100 800 0 0 0 0 0 0\n"
    "cpu0 50 0 50 400 0 0 0 0 0 0\n"
    "cpu1 50 0 50 400 0 0 0 0 0 0\n"
    "intr 1 2 3\n"
)
STAT_2 = (
    "cpu  400 0 300 1100 0 0 0 0 0 0\n"
    "cpu0 250 0 150 500 0 0 0 0 0 0\n"
    "cpu1 150 0 150 600 0 0 0 0 0 0\n"
    "intr 4 5 6\n"
)
STAT_3 = (
    "cpu  500 0 400 1200 0 0 0 0 0 0\n"
    "cpu0 300 0 200 600 0 0 0 0 0 0\n"
)


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def log(log_stream):
    return Logger("debug", "text", log_stream)


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def _line_stat(text, name):
    for line in text.splitlines():
        fields = line.split()
        if fields and fields[0] == name:
            return parse_cpu_stat(fields[1:])
    raise KeyError(name)


@pytest.fixture
def roots(tmp_path):
    sys_root = tmp_path / "sys"
    proc_root = tmp_path / "proc"
    sys_root.mkdir()
    proc_root.mkdir()
    return sys_root, proc_root


def test_parse_cpu_stat_four_fields():
    stat = parse_cpu_stat(["1", "2", "3", "4"])
    assert stat.idle == 4
    assert stat.total == 10


def test_parse_cpu_stat_iowait_counts_as_idle():
    base = parse_cpu_stat(["1", "2", "3", "4"])
    with_iowait = parse_cpu_stat(["1", "2", "3", "4", "5"])
    assert with_iowait.idle - base.idle == 5
    assert with_iowait.total - base.total == 5


def test_parse_cpu_stat_ignores_fields_past_steal():
    base = ["1", "2", "3", "4", "5", "6", "7", "8"]
    assert parse_cpu_stat(base + ["x", "y"]) == parse_cpu_stat(base)


@pytest.mark.parametrize(
    "fields",
    [
        ["1", "2", "3"],
        ["1", "2", "x", "4"],
        ["-1", "0", "0", "0"],
        ["1", "2", "3", "4", "bad"],
    ],
)
def test_parse_cpu_stat_rejects_bad_input(fields):
    with pytest.raises(ValueError):
        parse_cpu_stat(fields)


def test_calculate_usage_without_elapsed_time_is_zero():
    stat = CpuStat(total=500, idle=200)
    assert calculate_usage(stat, stat) == 0.0


def test_calculate_usage_all_idle_is_zero():
    assert calculate_usage(CpuStat(100, 50), CpuStat(200, 150)) == 0.0


def test_calculate_usage_fully_busy():
    assert calculate_usage(CpuStat(100, 50), CpuStat(200, 50)) == 100.0


def test_calculate_usage_grows_with_busy_time():
    start = CpuStat(0, 0)
    busier = calculate_usage(start, CpuStat(100, 20))
    idler = calculate_usage(start, CpuStat(100, 80))
    assert 0.0 < idler < busier < 100.0


def test_first_collect_has_no_usage(log, roots):
    sys_root, proc_root = roots
    _write(proc_root / "stat", STAT_1)
    metric = CpuCollector(log, sys_root, proc_root).collect()
    assert metric.usage == 0.0
    assert metric.per_core == []


def test_second_collect_reports_usage(log, roots):
    sys_root, proc_root = roots
    collector = CpuCollector(log, sys_root, proc_root)
    _write(proc_root / "stat", STAT_1)
    collector.collect()
    _write(proc_root / "stat", STAT_2)
    metric = collector.collect()

    assert metric.per_core == [
        calculate_usage(_line_stat(STAT_1, "cpu0"), _line_stat(STAT_2, "cpu0")),
        calculate_usage(_line_stat(STAT_1, "cpu1"), _line_stat(STAT_2, "cpu1")),
    ]
    smoothed = EMA(0.5)
    smoothed.add(0.0)
    smoothed.add(calculate_usage(_line_stat(STAT_1, "cpu"), _line_stat(STAT_2, "cpu")))
    assert metric.usage == smoothed.value()


def test_core_count_change_resets_smoothing(log, roots):
    sys_root, proc_root = roots
    collector = CpuCollector(log, sys_root, proc_root)
    for text in (STAT_1, STAT_2, STAT_3):
        _write(proc_root / "stat", text)
        metric = collector.collect()
    assert metric.per_core == [
        calculate_usage(_line_stat(STAT_2, "cpu0"), _line_stat(STAT_3, "cpu0"))
    ]


def test_malformed_line_is_skipped(log, log_stream, roots):
    sys_root, proc_root = roots
    collector = CpuCollector(log, sys_root, proc_root)
    bad = "cpu  1 1 1 1\ncpu0 a b c d\ncpu1 1 1 1 1\n"
    _write(proc_root / "stat", bad)
    collector.collect()
    _write(proc_root / "stat", bad.replace("cpu1 1 1 1 1", "cpu1 5 1 1 1"))
    metric = collector.collect()
    assert len(metric.per_core) == 1
    assert "failed to parse cpu stat" in log_stream.getvalue()


def test_missing_proc_stat(log, log_stream, roots):
    sys_root, proc_root = roots
    metric = CpuCollector(log, sys_root, proc_root).collect()
    assert metric.usage == 0.0
    assert metric.per_core == []
    assert "failed to read /proc/stat" in log_stream.getvalue()


def test_temperature_uses_matching_sensor(log, roots):
    sys_root, proc_root = roots
    _write(sys_root / "class/hwmon/hwmon0/name", "acpitz\n")
    _write(sys_root / "class/hwmon/hwmon0/temp1_input", "40000\n")
    _write(sys_root / "class/hwmon/hwmon1/name", "k10temp\n")
    _write(sys_root / "class/hwmon/hwmon1/temp1_input", "61500\n")
    metric = CpuCollector(log, sys_root, proc_root).collect()
    assert metric.temperature * 1000 == 61500


def test_temperature_without_known_sensor_is_zero(log, roots):
    sys_root, proc_root = roots
    _write(sys_root / "class/hwmon/hwmon0/name", "acpitz\n")
    _write(sys_root / "class/hwmon/hwmon0/temp1_input", "40000\n")
    assert CpuCollector(log, sys_root, proc_root).collect().temperature == 0.0


def test_frequency_read_from_cpu0(log, roots):
    sys_root, proc_root = roots
    _write(sys_root / "devices/system/cpu/cpu0/cpufreq/scaling_cur_freq", "3600000\n")
    metric = CpuCollector(log, sys_root, proc_root).collect()
    assert metric.frequency * 1e3 == 3600000


def test_unparsable_frequency_is_zero(log, log_stream, roots):
    sys_root, proc_root = roots
    _write(sys_root / "devices/system/cpu/cpu0/cpufreq/scaling_cur_freq", "fast\n")
    metric = CpuCollector(log, sys_root, proc_root).collect()
    assert metric.frequency == 0.0
    assert "failed to parse cpu frequency" in log_stream.getvalue()


def test_rapl_power_after_second_sample(log, roots):
    sys_root, proc_root = roots
    energy = sys_root / "class/powercap/intel-rapl/intel-rapl:0/energy_uj"
    collector = CpuCollector(log, sys_root, proc_root)
    _write(energy, "1000000\n")
    assert collector.collect().power_watt == 0.0
    _write(energy, "3000000\n")
    assert collector.collect().power_watt > 0.0


def test_hwmon_power_used_while_rapl_is_seeding(log, roots):
    sys_root, proc_root = roots
    _write(sys_root / "class/powercap/intel-rapl/intel-rapl:0/energy_uj", "1000000\n")
    _write(sys_root / "class/hwmon/hwmon0/name", "zenpower\n")
    _write(sys_root / "class/hwmon/hwmon0/power1_input", "45000000\n")
    metric = CpuCollector(log, sys_root, proc_root).collect()
    assert metric.power_watt * 1e6 == pytest.approx(45000000)


def test_hwmon_power_not_consulted_without_rapl(log, roots):
    sys_root, proc_root = roots
    _write(sys_root / "class/hwmon/hwmon0/name", "zenpower\n")
    _write(sys_root / "class/hwmon/hwmon0/power1_input", "45000000\n")
    assert CpuCollector(log, sys_root, proc_root).collect().power_watt == 0.0