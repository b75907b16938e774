import logging
import os
import re
import socket
import unittest
from unittest.mock import patch

from rsyslog_backend.exceptions import ConfigurationError
from rsyslog_backend.handler import RsyslogHandler, should_emit
from rsyslog_backend.models.severity import Severity


class TestShouldEmit(unittest.TestCase):
    def test_filter(self):
        self.assertFalse(should_emit("info", "warning"))
        self.assertTrue(should_emit("error", "warning"))
        self.assertTrue(should_emit("warning", "warning"))
        self.assertTrue(should_emit(Severity.EMERGENCY, "debug"))
        self.assertTrue(should_emit("debug", "debug"))


class TestRsyslogHandler(unittest.TestCase):
    def setUp(self):
        self.receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.receiver.bind(("127.0.0.1", 0))
        self.receiver.settimeout(2.0)
        self.port = self.receiver.getsockname()[1]

        self.handler = RsyslogHandler(
            "test", host="127.0.0.1", port=self.port, facility="local1", app_name="svc"
        )
        self.logger = logging.getLogger(f"rsyslog_backend.tests.{self.id()}")
        self.logger.propagate = False
        self.logger.setLevel(logging.DEBUG)
        self.logger.addHandler(self.handler)

    def tearDown(self):
        self.logger.removeHandler(self.handler)
        self.handler.close()
        self.receiver.close()

    def receive(self) -> str:
        data, _ = self.receiver.recvfrom(65536)
        return data.decode("utf-8")

    def assert_nothing_received(self):
        self.receiver.settimeout(0.2)
        with self.assertRaises(socket.timeout):
            self.receiver.recvfrom(65536)

    def test_error_event(self):
        self.logger.error("boom")
        text = self.receive()
        self.assertRegex(
            text,
            r"^<139>1 \d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}" + re.escape(self.handler.config.identity) + r"boom\n$"
        )
        self.assertTrue(self.handler.config.identity.endswith(f" svc {os.getpid()} - "))

    def test_minimum_level(self):
        self.handler.configure(level="warning")
        self.logger.info("quiet")
        self.assert_nothing_received()
        self.logger.error("loud")
        self.assertTrue(self.receive().endswith(" - loud\n"))

    def test_structured_data_from_extra(self):
        self.handler.configure(structured_data={"req@1": ["request_id", "user"]})
        self.logger.info("served", extra={"request_id": "abc", "user": None})
        self.assertIn(' - [req@1 request_id="abc"] served\n', self.receive())

    def test_failed_reconfiguration_keeps_previous_state(self):
        before = self.handler.config
        with patch("rsyslog_backend.config.socket.gethostbyname", side_effect=socket.gaierror("nope")):
            with self.assertRaises(ConfigurationError):
                self.handler.configure(host="missing.example", port=1)
        self.assertIs(self.handler.config, before)
        self.logger.warning("still here")
        self.assertTrue(self.receive().endswith("still here\n"))

    def test_reconfiguration_persists_options(self):
        self.handler.configure(app_name="other")
        self.handler.configure(level="info")
        self.assertEqual(self.handler.config.app_name, "other")
        self.assertEqual(self.handler.config.port, self.port)

    def test_send_failure_is_not_raised(self):
        with patch.object(self.handler, "_sock") as sock:
            sock.sendto.side_effect = OSError("unreachable")
            self.logger.error("lost")
        self.assertEqual(self.handler.dropped, 1)

    def test_encoding_failure_is_not_raised(self):
        with patch("rsyslog_backend.handler.encode_event", side_effect=RuntimeError("bug")), \
                patch.object(self.handler, "handleError") as handle_error:
            self.logger.error("broken")
        handle_error.assert_called_once()

    def test_recursion_error_is_not_raised(self):
        class Recursive:
            def __str__(self):
                raise RecursionError("deep")

        with patch.object(self.handler, "handleError") as handle_error:
            self.logger.error("%s", Recursive())
        handle_error.assert_called_once()
        self.assert_nothing_received()

    def test_close_is_idempotent(self):
        self.handler.close()
        self.handler.close()
        self.logger.error("after close")
        self.assert_nothing_received()
        self.assertEqual(self.handler.dropped, 0)


class TestHandlerEnv(unittest.TestCase):
    def test_env_and_options(self):
        handler = RsyslogHandler("env", env={"port": 1000, "app_name": "from-env"}, port=2000)
        try:
            self.assertEqual(handler.config.port, 2000)
            self.assertEqual(handler.config.app_name, "from-env")
            handler.configure(facility="local2")
            self.assertEqual(handler.config.port, 2000)
        finally:
            handler.close()

    def test_invalid_options_raise(self):
        with self.assertRaises(ConfigurationError):
            RsyslogHandler("bad", port=0)


if __name__ == "__main__":
    unittest.main()
