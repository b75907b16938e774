import ipaddress
import socket
import unittest
from unittest.mock import mock_open, patch

import yaml

from rsyslog_backend.config import (
    HandlerConfig,
    build_identity,
    configure,
    load_config,
    resolve_host,
)
from rsyslog_backend.exceptions import ConfigurationError
from rsyslog_backend.models.severity import Facility, Severity


class TestResolveHost(unittest.TestCase):
    def test_addresses_pass_through(self):
        self.assertEqual(resolve_host("10.1.2.3"), "10.1.2.3")
        self.assertEqual(resolve_host((127, 0, 0, 1)), "127.0.0.1")
        self.assertEqual(resolve_host(ipaddress.IPv4Address("192.168.0.1")), "192.168.0.1")

    @patch("rsyslog_backend.config.socket.gethostbyname", return_value="10.9.8.7")
    def test_hostname_is_resolved(self, mock_lookup):
        self.assertEqual(resolve_host("collector.example"), "10.9.8.7")
        mock_lookup.assert_called_once_with("collector.example")

    @patch("rsyslog_backend.config.socket.gethostbyname", side_effect=socket.gaierror("nope"))
    def test_resolution_failure(self, mock_lookup):
        with self.assertRaises(ConfigurationError):
            resolve_host("missing.example")

    def test_ipv6_rejected(self):
        with self.assertRaises(ConfigurationError):
            resolve_host("::1")

    def test_invalid(self):
        for host in ("", None, 12):
            with self.assertRaises(ConfigurationError):
                resolve_host(host)


class TestBuildIdentity(unittest.TestCase):
    def test_layout(self):
        self.assertEqual(build_identity("svc", hostname="box", pid=99), "Z box svc 99 - ")

    def test_sanitizes_fields(self):
        self.assertEqual(build_identity("my app", hostname="", pid=1), "Z - myapp 1 - ")
        self.assertEqual(build_identity("a" * 60, hostname="h", pid=1), f"Z h {'a' * 48} 1 - ")

    @patch("rsyslog_backend.config.os.getpid", return_value=321)
    @patch("rsyslog_backend.config.socket.gethostname", return_value="node1")
    def test_defaults_from_process(self, mock_hostname, mock_pid):
        self.assertEqual(build_identity("svc"), "Z node1 svc 321 - ")


class TestConfigure(unittest.TestCase):
    def setUp(self):
        self.base = configure(HandlerConfig(), {})

    def test_defaults(self):
        self.assertEqual(self.base.destination, ("127.0.0.1", 514))
        self.assertEqual(self.base.facility, Facility.LOCAL1)
        self.assertEqual(self.base.level, Severity.DEBUG)
        self.assertEqual(self.base.format, "$message\n")
        self.assertEqual(self.base.structured_data, ())
        self.assertTrue(self.base.identity.startswith("Z "))

    def test_partial_overrides_keep_prior_values(self):
        first = configure(self.base, {
            "port": 9999,
            "facility": "local4",
            "app_name": "svc",
            "level": "warning",
            "metadata": ["user"],
            "structured_data": {"meta@1": ["line"]},
            "format": "$level $message",
        })
        second = configure(first, {"port": 1514})
        self.assertEqual(second.port, 1514)
        for name in ("host", "address", "facility", "level", "metadata", "format",
                     "structured_data", "app_name", "escape_sd"):
            self.assertEqual(getattr(second, name), getattr(first, name), name)
        self.assertIs(second.template, first.template)

    def test_env_merged_under_overrides(self):
        config = configure(self.base, {"port": 2000}, env={"port": 1000, "app_name": "from-env"})
        self.assertEqual(config.port, 2000)
        self.assertEqual(config.app_name, "from-env")

    def test_unknown_options_ignored(self):
        config = configure(self.base, {"colour": "blue"})
        self.assertEqual(config, configure(self.base, {}))

    def test_identity_recomputed(self):
        with patch("rsyslog_backend.config.socket.gethostname", return_value="renamed"):
            config = configure(self.base, {"app_name": "svc"})
        self.assertTrue(config.identity.startswith("Z renamed svc "))

    def test_invalid_options(self):
        for overrides in ({"port": "abc"}, {"port": 70000}, {"format": "$nope"},
                          {"metadata": "user"}, {"structured_data": 5},
                          {"escape_sd": "maybe"}, {"escape_sd": 1}):
            with self.assertRaises(ConfigurationError, msg=repr(overrides)):
                configure(self.base, overrides)

    def test_escape_sd_accepts_boolean_strings(self):
        self.assertFalse(configure(self.base, {"escape_sd": "false"}).escape_sd)
        self.assertTrue(configure(self.base, {"escape_sd": "True"}).escape_sd)
        self.assertFalse(configure(self.base, {"escape_sd": False}).escape_sd)

    def test_unknown_level_is_error(self):
        self.assertEqual(configure(self.base, {"level": "loud"}).level, Severity.ERROR)


class TestLoadConfig(unittest.TestCase):
    @patch("builtins.open", new_callable=mock_open, read_data="rsyslog:\n  port: 514")
    def test_load_config_success(self, mock_file):
        config = load_config("dummy.yaml")
        self.assertEqual(config["rsyslog"]["port"], 514)
        mock_file.assert_called_with("dummy.yaml", "r", encoding="utf-8")

    @patch("builtins.open", new_callable=mock_open, read_data="")
    def test_load_config_empty(self, mock_file):
        self.assertEqual(load_config("empty.yaml"), {})

    @patch("builtins.open", side_effect=FileNotFoundError)
    def test_load_config_not_found(self, mock_file):
        with self.assertRaises(FileNotFoundError):
            load_config("missing.yaml")

    @patch("builtins.open", new_callable=mock_open, read_data="invalid: yaml:")
    @patch("yaml.safe_load", side_effect=yaml.YAMLError("error"))
    def test_load_config_yaml_error(self, mock_yaml_load, mock_file):
        with self.assertRaises(yaml.YAMLError):
            load_config("invalid.yaml")


if __name__ == "__main__":
    unittest.main()
