import unittest
from unittest.mock import patch

from src.account_migration.observability.metrics import (
    LoggerBackend,
    MetricsCollector,
    get_global_collector,
    reset_global_collector,
)


class TestLoggerBackend(unittest.TestCase):
    def test_increment_counter(self):
        backend = LoggerBackend()
        backend.increment("test_counter", 1)
        backend.increment("test_counter", 2, tags={"status": "ok"})

        counters = backend.get_summary()["counters"]

        self.assertEqual(counters["test_counter"], 1)
        self.assertEqual(counters["test_counter[status=ok]"], 2)

    def test_timing(self):
        backend = LoggerBackend()
        backend.timing("test_timer", 100)
        backend.timing("test_timer", 200)

        timings = backend.get_summary()["timings"]

        self.assertEqual(timings["test_timer"]["count"], 2)
        self.assertEqual(timings["test_timer"]["avg"], 150.0)
        self.assertEqual(timings["test_timer"]["min"], 100)
        self.assertEqual(timings["test_timer"]["max"], 200)

    def test_tags_are_sorted(self):
        backend = LoggerBackend()
        backend.increment("c", tags={"b": "2", "a": "1"})

        self.assertIn("c[a=1,b=2]", backend.get_summary()["counters"])


class TestMetricsCollector(unittest.TestCase):
    def test_count_accounts(self):
        collector = MetricsCollector()
        collector.count_accounts("export", "ok", 5)
        collector.count_accounts("export", "ok", 3)
        collector.count_accounts("import", "failed", 0)

        counters = collector.get_summary()["counters"]

        self.assertEqual(counters["accounts_total[direction=export,status=ok]"], 8)
        self.assertNotIn("accounts_total[direction=import,status=failed]", counters)

    def test_requests_and_latency(self):
        collector = MetricsCollector()
        collector.count_request("downloadAccount", "timeout")
        collector.count_retry("downloadAccount")
        collector.record_latency("downloadAccount", 12.5)

        summary = collector.get_summary()

        self.assertEqual(
            summary["counters"]["identity_api_requests_total[endpoint=downloadAccount,outcome=timeout]"],
            1,
        )
        self.assertEqual(
            summary["counters"]["identity_api_retries_total[endpoint=downloadAccount]"], 1
        )
        self.assertEqual(
            summary["timings"]["identity_api_latency_ms[endpoint=downloadAccount]"]["avg"], 12.5
        )

    @patch("src.account_migration.observability.metrics.logger")
    def test_log_summary(self, mock_logger):
        collector = MetricsCollector()
        collector.count_accounts("import", "ok", 2)

        collector.log_summary()

        mock_logger.info.assert_called_once()
        args, kwargs = mock_logger.info.call_args
        self.assertEqual(args, ("Metrics summary",))
        self.assertEqual(kwargs["counters"], {"accounts_total[direction=import,status=ok]": 2})


class TestGlobalCollector(unittest.TestCase):
    def test_singleton_and_reset(self):
        first = get_global_collector()
        self.assertIs(get_global_collector(), first)

        reset_global_collector()

        self.assertIsNot(get_global_collector(), first)
