"""
Monitor Service

Collects process and host statistics with psutil and renders them either as
JSON or as a small self-refreshing HTML dashboard.
"""

import html
import json
import logging
import threading
import time
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional

import psutil

logger = logging.getLogger(__name__)


@dataclass
class ProcessStats:
    cpu: float = 0.0
    ram: int = 0
    conns: int = 0


@dataclass
class HostStats:
    cpu: float = 0.0
    ram: int = 0
    total_ram: int = 0
    load_avg: float = 0.0
    conns: int = 0


@dataclass
class MonitorStats:
    """Data class representing one statistics snapshot"""
    pid: ProcessStats = field(default_factory=ProcessStats)
    os: HostStats = field(default_factory=HostStats)
    collected_at: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"pid": asdict(self.pid), "os": asdict(self.os)}


class MonitorService:
    """
    Thread-safe cached access to process and host statistics.

    A snapshot is reused until it is older than ``refresh_seconds`` so that
    several dashboards polling at once do not each hit psutil.
    """

    def __init__(self, refresh_seconds: float = 3.0, process: Optional[psutil.Process] = None):
        self.refresh_seconds = refresh_seconds
        self._process = process or psutil.Process()
        self._stats: Optional[MonitorStats] = None
        self._lock = threading.RLock()

    def prime(self):
        """Start the CPU counters so the first real sample is meaningful."""
        self._process.cpu_percent(interval=None)
        psutil.cpu_percent(interval=None)

    def _is_stale(self, now: float) -> bool:
        return self._stats is None or now - self._stats.collected_at >= self.refresh_seconds

    def get_stats(self) -> MonitorStats:
        with self._lock:
            now = time.monotonic()
            if self._is_stale(now):
                self._stats = self._collect(now)
            return self._stats

    def _collect(self, now: float) -> MonitorStats:
        proc = self._process
        with proc.oneshot():
            pid_stats = ProcessStats(
                cpu=proc.cpu_percent(interval=None),
                ram=proc.memory_info().rss,
                conns=self._count(proc.net_connections, "process connections"),
            )

        memory = psutil.virtual_memory()
        try:
            load_avg = psutil.getloadavg()[0]
        except (AttributeError, OSError) as e:
            logger.debug(f"Load average unavailable: {e}")
            load_avg = 0.0

        os_stats = HostStats(
            cpu=psutil.cpu_percent(interval=None),
            ram=memory.used,
            total_ram=memory.total,
            load_avg=load_avg,
            conns=self._count(psutil.net_connections, "host connections"),
        )
        return MonitorStats(pid=pid_stats, os=os_stats, collected_at=now)

    @staticmethod
    def _count(source, label: str) -> int:
        try:
            return len(source())
        except psutil.Error as e:
            # typically AccessDenied on macOS without root
            logger.debug(f"Could not count {label}: {e}")
            return 0


def render_dashboard(title: str, refresh_seconds: float, font_url: str, chartjs_url: str) -> str:
    """Render the HTML dashboard that polls the JSON form of the same endpoint."""
    return DASHBOARD_TEMPLATE.format(
        title=html.escape(title),
        font_url=html.escape(font_url, quote=True),
        chartjs_url=html.escape(chartjs_url, quote=True),
        refresh_ms=json.dumps(int(refresh_seconds * 1000)),
    )


DASHBOARD_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<link rel="stylesheet" href="{font_url}">
<script src="{chartjs_url}"></script>
<title>{title}</title>
<style>
body {{ margin: 0; font: 16px / 1.6 Roboto, sans-serif; }}
.wrapper {{ max-width: 900px; margin: 0 auto; padding: 30px 0; }}
.title {{ text-align: center; margin-bottom: 2em; }}
.row {{ display: flex; margin-bottom: 20px; }}
.metric {{ width: 240px; padding: 0 20px; }}
.metric h2 {{ margin: 0; font-size: 1em; color: #333; }}
.metric .value {{ font-size: 2em; font-weight: normal; }}
.metric .value small {{ font-size: 0.5em; color: #666; }}
.chart {{ flex: 1; height: 120px; }}
</style>
</head>
<body>
<section class="wrapper">
<h1 class="title">{title}</h1>
<div class="row"><div class="metric"><h2>CPU Usage</h2><div class="value" id="cpu">0.00%</div></div><div class="chart"><canvas id="cpuChart"></canvas></div></div>
<div class="row"><div class="metric"><h2>Memory Usage</h2><div class="value" id="ram">0.00 MB</div></div><div class="chart"><canvas id="ramChart"></canvas></div></div>
<div class="row"><div class="metric"><h2>Open Connections</h2><div class="value" id="conns">0</div></div><div class="chart"><canvas id="connsChart"></canvas></div></div>
<div class="row"><div class="metric"><h2>Load Average</h2><div class="value" id="load">0.00</div></div></div>
</section>
<script>
const refresh = {refresh_ms};
const points = 30;
const charts = {{}};
function formatBytes(b) {{
  const units = ["B", "KB", "MB", "GB", "TB"];
  let i = 0;
  while (b >= 1024 && i < units.length - 1) {{ b /= 1024; i++; }}
  return b.toFixed(2) + " " + units[i];
}}
function makeChart(id) {{
  if (typeof Chart === "undefined") return null;
  return new Chart(document.getElementById(id), {{
    type: "line",
    data: {{ labels: [], datasets: [{{ data: [], fill: false, borderWidth: 1, pointRadius: 0 }}] }},
    options: {{ animation: false, legend: {{ display: false }}, maintainAspectRatio: false }}
  }});
}}
function push(chart, value) {{
  if (!chart) return;
  const d = chart.data;
  d.labels.push(new Date().toLocaleTimeString());
  d.datasets[0].data.push(value);
  if (d.labels.length > points) {{ d.labels.shift(); d.datasets[0].data.shift(); }}
  chart.update();
}}
["cpuChart", "ramChart", "connsChart"].forEach(function (id) {{ charts[id] = makeChart(id); }});
function update(s) {{
  document.getElementById("cpu").innerHTML = s.pid.cpu.toFixed(2) + "% <small>/ " + s.os.cpu.toFixed(2) + "%</small>";
  document.getElementById("ram").innerHTML = formatBytes(s.pid.ram) + " <small>/ " + formatBytes(s.os.total_ram) + "</small>";
  document.getElementById("conns").innerHTML = s.pid.conns + " <small>/ " + s.os.conns + "</small>";
  document.getElementById("load").textContent = s.os.load_avg.toFixed(2);
  push(charts.cpuChart, s.pid.cpu);
  push(charts.ramChart, s.pid.ram / 1048576);
  push(charts.connsChart, s.pid.conns);
}}
function fetchStats() {{
  fetch(window.location.pathname, {{ headers: {{ "Accept": "application/json" }}, credentials: "same-origin" }})
    .then(function (r) {{ return r.json(); }})
    .then(update)
    .catch(function (e) {{ console.error(e); }})
    .finally(function () {{ setTimeout(fetchStats, refresh); }});
}}
fetchStats();
</script>
</body>
</html>
"""
