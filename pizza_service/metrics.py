"""Request, auth and purchase metrics pushed to an OTLP/HTTP endpoint.

A `MetricsReporter` owns all counters. The API keeps one on `app.state` and
records into it; `start()` runs a daemon thread that flushes every period and
`stop()` ends it. Nothing here is module-global.
"""

from __future__ import annotations

import os
import threading
import time
from typing import Any, Dict, List, Optional

import requests


def _debug(msg: str) -> None:
    print(f"[metrics] {msg}")


def cpu_usage_percent() -> float:
    """1-minute load average as a share of the available CPUs."""
    try:
        load = os.getloadavg()[0]
    except (AttributeError, OSError):
        return 0.0
    cpus = os.cpu_count() or 1
    return round(load / cpus * 100, 2)


def memory_usage_percent() -> float:
    try:
        page = os.sysconf("SC_PAGE_SIZE")
        total = os.sysconf("SC_PHYS_PAGES") * page
        free = os.sysconf("SC_AVPHYS_PAGES") * page
    except (AttributeError, ValueError, OSError):
        return 0.0
    if total <= 0:
        return 0.0
    return round((total - free) / total * 100, 2)


def create_metric(
    name: str,
    value: float,
    unit: str,
    metric_type: str,
    value_type: str,
    attributes: Dict[str, Any],
) -> Dict[str, Any]:
    """One OTLP-JSON metric with a single data point.

    metric_type is "sum" (monotonic, cumulative) or "gauge"; value_type is
    "asInt" or "asDouble".
    """
    data_point = {
        value_type: int(value) if value_type == "asInt" else float(value),
        "timeUnixNano": time.time_ns(),
        "attributes": [{"key": str(k), "value": {"stringValue": str(v)}} for k, v in attributes.items()],
    }
    metric: Dict[str, Any] = {"name": name, "unit": unit, metric_type: {"dataPoints": [data_point]}}
    if metric_type == "sum":
        metric[metric_type]["aggregationTemporality"] = "AGGREGATION_TEMPORALITY_CUMULATIVE"
        metric[metric_type]["isMonotonic"] = True
    return metric


class MetricsReporter:
    def __init__(
        self,
        *,
        url: str,
        api_key: Optional[str],
        source: str,
        period_seconds: float = 10.0,
        timeout: float = 10.0,
    ):
        self.url = url
        self.api_key = api_key
        self.source = source
        self.period_seconds = float(period_seconds)
        self.timeout = float(timeout)

        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self._requests: Dict[str, int] = {}
        self._auth = {"success": 0, "failure": 0}
        self._active_users = 0
        self._pizzas_sold = 0
        self._pizza_failures = 0
        self._revenue = 0.0
        self._request_latency_ms = 0.0
        self._pizza_latency_ms = 0.0

    # -----------------------------
    # Recording
    # -----------------------------

    def record_request(self, method: str, latency_ms: float) -> None:
        with self._lock:
            key = method.upper()
            self._requests[key] = self._requests.get(key, 0) + 1
            self._requests["ALL"] = self._requests.get("ALL", 0) + 1
            self._request_latency_ms = float(latency_ms)

    def record_auth(self, success: bool) -> None:
        with self._lock:
            self._auth["success" if success else "failure"] += 1

    def user_logged_in(self) -> None:
        with self._lock:
            self._active_users += 1

    def user_logged_out(self) -> None:
        with self._lock:
            self._active_users = max(0, self._active_users - 1)

    def record_purchase(self, *, success: bool, pizzas: int, revenue: float, latency_ms: float) -> None:
        with self._lock:
            if success:
                self._pizzas_sold += int(pizzas)
                self._revenue += float(revenue)
            else:
                self._pizza_failures += 1
            self._pizza_latency_ms = float(latency_ms)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "requests": dict(self._requests),
                "auth": dict(self._auth),
                "active_users": self._active_users,
                "pizzas_sold": self._pizzas_sold,
                "pizza_failures": self._pizza_failures,
                "revenue": self._revenue,
                "request_latency_ms": self._request_latency_ms,
                "pizza_latency_ms": self._pizza_latency_ms,
            }

    # -----------------------------
    # Export
    # -----------------------------

    def build_metrics(self) -> List[Dict[str, Any]]:
        s = self.snapshot()
        src = {"source": self.source}
        metrics: List[Dict[str, Any]] = []

        for method, count in sorted(s["requests"].items()):
            metrics.append(create_metric("http_requests", count, "1", "sum", "asInt", {**src, "method": method}))
        for outcome, count in sorted(s["auth"].items()):
            metrics.append(create_metric("auth_attempts", count, "1", "sum", "asInt", {**src, "outcome": outcome}))

        metrics.append(create_metric("active_users", s["active_users"], "1", "gauge", "asInt", src))
        metrics.append(create_metric("pizzas_sold", s["pizzas_sold"], "1", "sum", "asInt", src))
        metrics.append(create_metric("pizza_failures", s["pizza_failures"], "1", "sum", "asInt", src))
        metrics.append(create_metric("revenue", s["revenue"], "BTC", "sum", "asDouble", src))
        metrics.append(create_metric("request_latency", s["request_latency_ms"], "ms", "gauge", "asDouble", src))
        metrics.append(create_metric("pizza_latency", s["pizza_latency_ms"], "ms", "gauge", "asDouble", src))
        metrics.append(create_metric("cpu", cpu_usage_percent(), "%", "gauge", "asDouble", src))
        metrics.append(create_metric("memory", memory_usage_percent(), "%", "gauge", "asDouble", src))
        return metrics

    def flush(self) -> bool:
        """Push the current batch. Failures are logged and reported as False, never raised."""
        if not self.url:
            return False
        body = {"resourceMetrics": [{"scopeMetrics": [{"metrics": self.build_metrics()}]}]}
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            r = requests.post(self.url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            _debug(f"Error pushing metrics: {e}")
            return False
        if not r.ok:
            _debug(f"Error pushing metrics: HTTP {r.status_code} url={self.url}")
            return False
        return True

    # -----------------------------
    # Lifecycle
    # -----------------------------

    def _run(self) -> None:
        while not self._stop.wait(self.period_seconds):
            self.flush()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="metrics-reporter", daemon=True)
        self._thread.start()
        _debug(f"Reporting every {self.period_seconds:g}s to {self.url}")

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.period_seconds + self.timeout)
            self._thread = None
