"""Operational metrics for the analysis pipeline."""

import logging
from typing import Dict, Any, List, Optional, Tuple
from collections import defaultdict

logger = logging.getLogger(__name__)

LabelKey = Tuple[Tuple[str, str], ...]

# Upper bounds in seconds
DEFAULT_BUCKETS = (0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0, 600.0)


def _label_key(labels: Optional[Dict[str, str]]) -> LabelKey:
    if not labels:
        return ()
    return tuple(sorted((k, str(v)) for k, v in labels.items()))


def _format_labels(key: LabelKey, extra: Optional[Tuple[str, str]] = None) -> str:
    pairs = list(key)
    if extra:
        pairs.append(extra)
    if not pairs:
        return ""
    return "{" + ",".join(f'{k}="{v}"' for k, v in pairs) + "}"


class _Histogram:
    def __init__(self, buckets: Tuple[float, ...]):
        self.buckets = buckets
        self.counts = [0] * len(buckets)
        self.count = 0
        self.total = 0.0

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value
        for i, bound in enumerate(self.buckets):
            if value <= bound:
                self.counts[i] += 1


class PipelineMetrics:
    """
    In-process gauges, counters and latency histograms.

    PATTERN: Real-time tracking with label-keyed aggregation
    CRITICAL: Recording never raises; disabled metrics are no-ops
    GOTCHA: Histograms keep counts and sums only, never raw samples
    """

    def __init__(self, enabled: bool = True, buckets: Tuple[float, ...] = DEFAULT_BUCKETS):
        self.logger = logging.getLogger(__name__)
        self.enabled = enabled
        self.buckets = buckets
        self.gauges: Dict[str, Dict[LabelKey, float]] = defaultdict(dict)
        self.counters: Dict[str, Dict[LabelKey, float]] = defaultdict(
            lambda: defaultdict(float)
        )
        self.histograms: Dict[str, Dict[LabelKey, _Histogram]] = defaultdict(dict)

    def set_gauge(
        self, name: str, value: float, labels: Optional[Dict[str, str]] = None
    ) -> None:
        if not self.enabled:
            return
        self.gauges[name][_label_key(labels)] = float(value)

    def increment(
        self, name: str, amount: float = 1.0, labels: Optional[Dict[str, str]] = None
    ) -> None:
        if not self.enabled:
            return
        self.counters[name][_label_key(labels)] += amount

    def observe(
        self, name: str, value: float, labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Record one latency sample in seconds."""
        if not self.enabled:
            return
        key = _label_key(labels)
        series = self.histograms[name]
        if key not in series:
            series[key] = _Histogram(self.buckets)
        series[key].observe(value)

    def get_gauge(
        self, name: str, labels: Optional[Dict[str, str]] = None
    ) -> Optional[float]:
        return self.gauges.get(name, {}).get(_label_key(labels))

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        return self.counters.get(name, {}).get(_label_key(labels), 0.0)

    def snapshot(self) -> Dict[str, Any]:
        """
        Get all metrics as plain data.

        Returns:
            Dictionary with gauges, counters and histogram summaries
        """

        def series(values: Dict[LabelKey, Any], convert) -> List[Dict[str, Any]]:
            return [
                {"labels": dict(key), "value": convert(v)} for key, v in values.items()
            ]

        return {
            "gauges": {n: series(v, float) for n, v in self.gauges.items()},
            "counters": {n: series(v, float) for n, v in self.counters.items()},
            "histograms": {
                n: series(v, lambda h: {"count": h.count, "sum": round(h.total, 6)})
                for n, v in self.histograms.items()
            },
        }

    def render(self) -> str:
        """Render metrics in Prometheus text exposition format."""
        lines: List[str] = []

        for name, values in sorted(self.gauges.items()):
            lines.append(f"# TYPE {name} gauge")
            for key, value in values.items():
                lines.append(f"{name}{_format_labels(key)} {value}")

        for name, values in sorted(self.counters.items()):
            lines.append(f"# TYPE {name} counter")
            for key, value in values.items():
                lines.append(f"{name}{_format_labels(key)} {value}")

        for name, values in sorted(self.histograms.items()):
            lines.append(f"# TYPE {name} histogram")
            for key, hist in values.items():
                for bound, count in zip(hist.buckets, hist.counts):
                    labels = _format_labels(key, ("le", str(bound)))
                    lines.append(f"{name}_bucket{labels} {count}")
                labels = _format_labels(key, ("le", "+Inf"))
                lines.append(f"{name}_bucket{labels} {hist.count}")
                lines.append(f"{name}_sum{_format_labels(key)} {hist.total}")
                lines.append(f"{name}_count{_format_labels(key)} {hist.count}")

        return "\n".join(lines) + "\n" if lines else ""

    def reset(self) -> None:
        self.gauges.clear()
        self.counters.clear()
        self.histograms.clear()
        self.logger.info("Pipeline metrics reset")
