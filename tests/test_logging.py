"""Tests for jellyfish_metrics.logging."""

import io
import json
import logging
import unittest
from types import SimpleNamespace

from jellyfish_metrics.logging import (
    JsonTraceFormatter,
    context_extra,
    get_logger,
    setup_logging,
)

_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"


class TestJsonTraceFormatter(unittest.TestCase):
    """Verify the JSON formatter produces the expected fields."""

    def test_format_contains_required_fields(self):
        record = logging.LogRecord(
            name="jellyfish_metrics.server",
            level=logging.INFO,
            pathname="server.py",
            lineno=1,
            msg="Metrics server listening on port %d",
            args=(9000,),
            exc_info=None,
        )
        data = json.loads(JsonTraceFormatter(_FORMAT).format(record))

        self.assertEqual(data["level"], "INFO")
        self.assertEqual(data["logger"], "jellyfish_metrics.server")
        self.assertEqual(data["message"], "Metrics server listening on port 9000")
        self.assertIsInstance(data["timestamp"], float)

    def _emit(self, **kwargs):
        buf = io.StringIO()
        handler = logging.StreamHandler(buf)
        handler.setFormatter(JsonTraceFormatter(_FORMAT))
        test_logger = logging.getLogger("json-context-test")
        test_logger.addHandler(handler)
        test_logger.setLevel(logging.INFO)

        test_logger.info("port in use", **kwargs)
        handler.flush()
        test_logger.removeHandler(handler)
        return json.loads(buf.getvalue().strip())

    def test_context_id_and_actor_are_emitted(self):
        context_id = "WORKER-1.0.0-c8b4c3b1-bd1b-4ac7-a11d-a73703615b33"
        data = self._emit(extra=context_extra({"id": context_id}))
        self.assertEqual(data["context_id"], context_id)
        self.assertEqual(data["actor"], "worker")

    def test_no_context_no_actor(self):
        data = self._emit()
        self.assertNotIn("context_id", data)
        self.assertNotIn("actor", data)


class TestContextExtra(unittest.TestCase):

    def test_mapping_and_object(self):
        self.assertEqual(context_extra({"id": "a"}), {"context_id": "a"})
        self.assertEqual(context_extra(SimpleNamespace(id="b")), {"context_id": "b"})
        self.assertEqual(context_extra(None), {"context_id": None})


class TestSetupLogging(unittest.TestCase):
    """Test that setup_logging configures the root logger correctly."""

    def setUp(self):
        # Reset the idempotency guard so each test can call setup_logging
        import jellyfish_metrics.logging as log_mod
        self._original = log_mod._setup_done
        log_mod._setup_done = False

        self._root = logging.getLogger()
        self._original_handlers = self._root.handlers[:]
        self._original_level = self._root.level

    def tearDown(self):
        import jellyfish_metrics.logging as log_mod
        log_mod._setup_done = self._original

        self._root.handlers = self._original_handlers
        self._root.setLevel(self._original_level)

    def test_adds_json_handler_to_root(self):
        setup_logging()
        json_handlers = [
            h for h in self._root.handlers
            if isinstance(h, logging.StreamHandler)
            and isinstance(h.formatter, JsonTraceFormatter)
        ]
        self.assertGreaterEqual(len(json_handlers), 1)

    def test_sets_log_level(self):
        setup_logging(level=logging.DEBUG)
        self.assertEqual(self._root.level, logging.DEBUG)

    def test_idempotent(self):
        setup_logging()
        count_before = len(self._root.handlers)
        setup_logging()
        self.assertEqual(len(self._root.handlers), count_before)


class TestGetLogger(unittest.TestCase):
    def test_returns_named_logger(self):
        logger = get_logger("worker")
        self.assertEqual(logger.name, "worker")
        self.assertIsInstance(logger, logging.Logger)


if __name__ == "__main__":
    unittest.main()
