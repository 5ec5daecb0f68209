"""In-process counters and gauges rendered in Prometheus text format."""

from __future__ import annotations

from dataclasses import dataclass, field

Labels = tuple[tuple[str, str], ...]


@dataclass(slots=True)
class _Family:
    kind: str
    help: str = ""
    samples: dict[Labels, float] = field(default_factory=dict)


class MetricsRegistry:
    """Metric store for a single event loop; no locking."""

    def __init__(self) -> None:
        self._families: dict[str, _Family] = {}

    def describe(self, name: str, kind: str, help_text: str) -> None:
        family = self._families.setdefault(name, _Family(kind=kind))
        family.kind = kind
        family.help = help_text

    def inc_counter(
        self, name: str, value: float = 1.0, *, labels: dict[str, str] | None = None
    ) -> None:
        family = self._families.setdefault(name, _Family(kind="counter"))
        key = _labels_key(labels)
        family.samples[key] = family.samples.get(key, 0.0) + value

    def set_gauge(
        self, name: str, value: float, *, labels: dict[str, str] | None = None
    ) -> None:
        family = self._families.setdefault(name, _Family(kind="gauge"))
        family.samples[_labels_key(labels)] = float(value)

    def render(self) -> str:
        lines: list[str] = []
        for name in sorted(self._families):
            family = self._families[name]
            if family.help:
                lines.append(f"# HELP {name} {family.help}")
            lines.append(f"# TYPE {name} {family.kind}")
            for labels in sorted(family.samples):
                lines.append(f"{name}{_format_labels(labels)} {family.samples[labels]}")
        return "\n".join(lines) + "\n"


def _labels_key(labels: dict[str, str] | None) -> Labels:
    if not labels:
        return ()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


def _format_labels(labels: Labels) -> str:
    if not labels:
        return ""
    parts = []
    for key, value in labels:
        escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        parts.append(f'{key}="{escaped}"')
    return "{" + ",".join(parts) + "}"


metrics = MetricsRegistry()
metrics.describe("tweets_received_total", "counter", "Tweets accepted for processing.")
metrics.describe("tweets_rejected_total", "counter", "Tweets rejected by validation.")
metrics.describe("ingestion_total", "counter", "Finished ingestion pipelines by result.")
metrics.describe("hashtags_recorded_total", "counter", "Hashtags pushed to the Top-K ranking.")
metrics.describe("hashtag_queries_total", "counter", "Top hashtag queries by result.")
metrics.describe("ingestion_in_flight", "gauge", "Ingestion pipelines still running.")
