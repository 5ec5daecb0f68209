from hashtag_trends.services.metrics import MetricsRegistry


def test_render_prometheus_text() -> None:
    registry = MetricsRegistry()
    registry.describe("ingestion_total", "counter", "Finished ingestion pipelines by result.")
    registry.inc_counter("ingestion_total", labels={"result": "skipped"})
    registry.inc_counter("ingestion_total", labels={"result": "completed"})
    registry.inc_counter("ingestion_total", 2, labels={"result": "completed"})
    registry.set_gauge("ingestion_in_flight", 4)

    assert registry.render() == (
        "# TYPE ingestion_in_flight gauge\n"
        "ingestion_in_flight 4.0\n"
        "# HELP ingestion_total Finished ingestion pipelines by result.\n"
        "# TYPE ingestion_total counter\n"
        'ingestion_total{result="completed"} 3.0\n'
        'ingestion_total{result="skipped"} 1.0\n'
    )


def test_label_values_are_escaped() -> None:
    registry = MetricsRegistry()
    registry.inc_counter("tweets_rejected_total", labels={"reason": 'a"b\\c'})

    assert 'tweets_rejected_total{reason="a\\"b\\\\c"} 1.0' in registry.render()


def test_counters_accumulate_per_label_set() -> None:
    registry = MetricsRegistry()
    registry.inc_counter("hashtags_recorded_total", 3)
    registry.inc_counter("hashtags_recorded_total", 2)
    registry.inc_counter("hashtag_queries_total", labels={"result": "ok"})

    rendered = registry.render()

    assert "hashtags_recorded_total 5.0\n" in rendered
    assert 'hashtag_queries_total{result="ok"} 1.0\n' in rendered
