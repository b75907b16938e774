#!/usr/bin/env python3
"""
Command line interface: send log lines to a collector, or run a local collector.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Any, Dict, Iterable, List, Optional

import yaml

from rsyslog_backend.collector import ReceivedMessage, SyslogCollector
from rsyslog_backend.config import load_config
from rsyslog_backend.exceptions import ConfigurationError
from rsyslog_backend.handler import RsyslogHandler
from rsyslog_backend.logger import setup_logging
from rsyslog_backend.models.event import RECORD_ATTRIBUTES

logger = logging.getLogger(__name__)

SENDER_LOGGER = "rsyslog_backend.sender"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rsyslog-backend",
        description="RFC5424 syslog over UDP"
    )
    parser.add_argument(
        '-c', '--config',
        type=str,
        default=None,
        help='Path to a YAML configuration file'
    )
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    send_parser = subparsers.add_parser('send', help='Send messages (arguments or stdin lines)')
    send_parser.add_argument('message', nargs='*', help='Message text; stdin lines when omitted')
    send_parser.add_argument('--name', default='rsyslog', help='Handler section name in the config file')
    send_parser.add_argument('--host', help='Collector host')
    send_parser.add_argument('--port', type=int, help='Collector UDP port')
    send_parser.add_argument('--facility', help='local0 .. local7')
    send_parser.add_argument('--app-name', dest='app_name', help='APP-NAME header field')
    send_parser.add_argument('--level', help='Minimum severity that is sent')
    send_parser.add_argument('--severity', default='info', help='Severity of the sent messages')
    send_parser.add_argument(
        '--meta',
        action='append',
        default=[],
        metavar='KEY=VALUE',
        help='Metadata attached to every message (repeatable)'
    )

    listen_parser = subparsers.add_parser('listen', help='Print RFC5424 datagrams received over UDP')
    listen_parser.add_argument('--host', default='127.0.0.1', help='Interface to bind to')
    listen_parser.add_argument('--port', type=int, default=5514, help='UDP port to listen on')
    return parser


def parse_meta(pairs: List[str]) -> Dict[str, str]:
    """Turn KEY=VALUE strings into a dict."""
    metadata = {}
    for pair in pairs:
        key, sep, value = pair.partition('=')
        if not sep or not key:
            raise ConfigurationError(f"Invalid metadata {pair!r}, expected KEY=VALUE")
        if key in RECORD_ATTRIBUTES:
            raise ConfigurationError(f"Metadata key {key!r} is reserved by LogRecord")
        metadata[key] = value
    return metadata


def send(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    overrides = {
        key: getattr(args, key)
        for key in ('host', 'port', 'facility', 'app_name', 'level')
        if getattr(args, key) is not None
    }
    extra = parse_meta(args.meta)
    extra['syslog_severity'] = args.severity
    handler = RsyslogHandler(args.name, env=config.get(args.name) or {}, **overrides)

    sender = logging.getLogger(SENDER_LOGGER)
    sender.propagate = False
    sender.setLevel(logging.DEBUG)
    sender.addHandler(handler)

    if args.message:
        lines: Iterable[str] = [' '.join(args.message)]
    else:
        lines = (line.rstrip('\n') for line in sys.stdin)
    count = 0
    try:
        for line in lines:
            sender.info(line, extra=extra)
            count += 1
    finally:
        sender.removeHandler(handler)
        handler.close()

    logger.info(f"Sent {count} message(s) to {handler.config.address}:{handler.config.port}, dropped {handler.dropped}")
    return 1 if handler.dropped else 0


def format_received(msg: ReceivedMessage) -> str:
    sd = ' '.join(
        f"{sd_id}{params}" for sd_id, params in msg.structured_data.items()
    )
    return (
        f"{msg.timestamp} {msg.hostname} {msg.app_name}[{msg.procid}] "
        f"facility={msg.facility} severity={msg.severity} {sd} {msg.message.rstrip()}"
    )


async def listen(host: str, port: int) -> None:
    queue: asyncio.Queue = asyncio.Queue()
    collector = SyslogCollector(queue, port=port, host=host)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Signal handlers are not implemented on Windows
            pass

    await collector.start()
    try:
        while not stop.is_set():
            try:
                msg = await asyncio.wait_for(queue.get(), timeout=0.5)
            except asyncio.TimeoutError:
                continue
            print(format_received(msg), flush=True)
    finally:
        await collector.stop()


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the rsyslog-backend command."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config) if args.config else {}
    except (FileNotFoundError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    log_settings = config.get('logging') or {}
    setup_logging(
        debug=args.debug or log_settings.get('debug', False),
        log_file=log_settings.get('file')
    )

    try:
        if args.command == 'send':
            return send(args, config)
        asyncio.run(listen(args.host, args.port))
        return 0
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
