import argparse
import asyncio
import logging

from .server import DEFAULT_REVEAL_DELAY_MS, HostServer


def main() -> None:
    parser = argparse.ArgumentParser(description="Texas Hold'em lobby server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=3000)
    parser.add_argument(
        "--reveal-delay-ms",
        type=int,
        default=DEFAULT_REVEAL_DELAY_MS,
        help="Pause between the showdown reveal and the payout (milliseconds)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level))

    server = HostServer(reveal_delay_ms=args.reveal_delay_ms)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
