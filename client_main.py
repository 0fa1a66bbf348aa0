"""Debug log producer command-line entry point.

Sends one or more events to the sink, flushes anything buffered, and
reports how many were delivered.
"""

import argparse
import json
import logging
import sys

from log_relay.config import load_producer_config
from log_relay.models import Level
from log_relay.producer import LogProducer, install_error_hooks

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send debug log events to the sink.")
    parser.add_argument("message", help="Log message text")
    parser.add_argument(
        "--level", choices=[level.value for level in Level], default=Level.INFO.value,
    )
    parser.add_argument("--source", default=None, help="Emitting context tag")
    parser.add_argument("--data", default=None, help="JSON object attached to the event")
    parser.add_argument("--count", type=int, default=1, help="Number of copies to send")
    return parser


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args, remaining = build_parser().parse_known_args(argv)
    config = load_producer_config(remaining)

    data = None
    if args.data is not None:
        try:
            data = json.loads(args.data)
        except json.JSONDecodeError as e:
            print(f"[CLIENT] Invalid --data JSON: {e}", file=sys.stderr)
            return 2

    producer = LogProducer(config)
    install_error_hooks(producer)
    try:
        for i in range(args.count):
            message = args.message if args.count == 1 else f"{args.message} ({i + 1}/{args.count})"
            if args.level == Level.ERROR.value:
                producer.error(message, None, args.source, data)
            else:
                producer.send_log(Level(args.level), message, data, args.source)
        producer.flush()

        print(
            f"[CLIENT] Delivered {producer.sent}, queued {len(producer.buffer)}, "
            f"dropped {producer.buffer.dropped} ({config.server_url})"
        )
    finally:
        producer.close()
    return 0 if len(producer.buffer) == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
