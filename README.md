# horizonx

A small metrics server for Linux hosts. At a fixed interval it reads `/proc`
and `/sys` to sample the machine. It keeps the latest snapshot in memory and
publishes it in two ways:

- `/metrics` returns the most recent snapshot as JSON.
- `/ws` is a WebSocket endpoint. Send `{"type": "subscribe", "channel": "metrics"}`
  and every new sample arrives as `{"channel": "metrics", "payload": {...}}`.
  Messages of any other type are ignored. A message that is not valid JSON is
  logged and skipped. The server sends a ping every 54 seconds. A connection
  is dropped after 60 seconds with no incoming message.

## What a snapshot contains

- **cpu**: overall and per-core usage in percent, from `/proc/stat`. It also
  has the hwmon temperature in °C of the first known CPU sensor (coretemp,
  k10temp, zenpower and others), the current frequency of cpu0, and package
  power in watts. Power comes from the RAPL energy counter, with hwmon power
  sensors as a fallback. Usage and power are smoothed with an exponential
  moving average.
- **gpu**: one entry for each `card*` in `/sys/class/drm`. Each entry has the
  vendor (AMD, NVIDIA, INTEL, or the raw PCI id), the model, the temperature,
  core busy percent, VRAM total, used and percent, power, and fan speed.
  Usage, power and fan speed are smoothed.
- **memory**: RAM total, available and used, and swap total, free and used.
  All are in GiB and come from `/proc/meminfo`.
- **disk**: one entry for each block device, leaving out loop, ram and dm-
  devices. Each entry has the device size in GiB, its temperature, and the
  usage of every mounted filesystem on its partitions.
- **network**: receive and transmit byte counters summed over all interfaces
  except `lo`. It also has rates in Mbit/s, smoothed.
- **uptime_seconds**: from `/proc/uptime`.

If one part of a snapshot cannot be read, the error is logged and that part
keeps its empty default. The other parts are still filled in.

## Installation

```
pip install .
```

## Running

```
horizonx-server
```

The server reads its settings from environment variables. It also loads them
from a `.env` file in the working directory, if one exists. Variables that
are already set in the environment take precedence over the file.

| Variable          | Default | Meaning                                                   |
|-------------------|---------|-----------------------------------------------------------|
| `HTTP_ADDR`       | `:3000` | Address to listen on: `host:port`, `[ipv6]:port` or `:port` |
| `SCRAPE_INTERVAL` | `1s`    | Sampling interval as a duration such as `500ms`, `2s` or `1m30s` |
| `LOG_LEVEL`       | `info`  | `debug`, `info`, `warn` or `error`. Any other value means `info` |
| `LOG_FORMAT`      | `text`  | `json` for JSON lines. Any other value gives `key=value` text |

If `SCRAPE_INTERVAL` is invalid or not positive, it is ignored and the default
is used. Log records go to standard output. The server stops cleanly on
SIGINT or SIGTERM.

## Using it as a library

```python
from horizonx.logger import Logger
from horizonx.sampler import Sampler

sampler = Sampler(Logger("info", "text"))
snapshot = sampler.collect()
print(snapshot.to_dict())
```

The building blocks:

- `horizonx.collectors`:
  - `CpuCollector` takes `log`, `sys_root` and `proc_root`.
  - `GpuCollector` takes `log` and `sys_root`.
  - `MemoryCollector` takes `log` and `proc_root`.
  - `DiskCollector` takes `log`, `sys_root` and `proc_root`.
  - `NetworkCollector` takes `log`, `proc_root` and `clock`.
  - `UptimeCollector` takes `log` and `proc_root`.

  Each one has a `collect()` method. The root arguments let you point a
  collector at a fake file tree. Filesystem usage is still read with
  `os.statvfs` on the mountpoints that are listed.
- `horizonx.models`: the dataclasses `Metrics`, `CPUMetric`, `GPUMetric`,
  `MemoryMetric`, `DiskMetric`, `FilesystemUsage` and `NetworkMetric`.
  `Metrics.to_dict()` returns the JSON-ready form.
- `horizonx.config`: `load()` returns a `Config`, and `parse_duration()` turns
  duration strings into seconds.
- `horizonx.store.SnapshotStore` is a thread-safe holder for the latest
  snapshot.
- `horizonx.scheduler.Scheduler` calls a sample function every interval until
  a `threading.Event` is set.
- `horizonx.hub.Hub` manages WebSocket rooms and broadcasts to them.
- `horizonx.server`: `create_app()` builds the aiohttp application, and
  `run()` runs the whole server.
- `horizonx.ema.EMA` and `horizonx.utils.contains_any` are small helpers.

## What it does not do

- It keeps only the latest snapshot. There is no history and no storage.
- There is no authentication on `/metrics` or `/ws`. Any origin may connect.
- It reads Linux procfs and sysfs only. It does not support other operating
  systems.

## Tests

```
pip install .[test]
pytest
```