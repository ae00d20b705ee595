import argparse
import asyncio
import logging
from typing import List, Optional

from holdem.models import MAX_SEATS, TableConfig

from .server import HostServer


def main(argv: Optional[List[str]] = None) -> None:
    # CLI doubles as documentation for the table settings.
    parser = argparse.ArgumentParser(description="Multiplayer Texas Hold'em room host")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--starting-stack", type=int, default=1_000)
    parser.add_argument("--small-blind", type=int, default=5)
    parser.add_argument("--big-blind", type=int, default=10)
    parser.add_argument("--max-seats", type=int, default=10, help=f"Seats per room (at most {MAX_SEATS})")
    parser.add_argument("--default-room", default="table", help="Room used when a client sends no room code")
    parser.add_argument(
        "--rotate-button",
        action="store_true",
        help="Move the dealer button to the next seat with chips before every hand after the first",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level))

    try:
        config = TableConfig(
            small_blind=args.small_blind,
            big_blind=args.big_blind,
            starting_stack=args.starting_stack,
            max_seats=args.max_seats,
            default_room=args.default_room.strip().lower() or "table",
            rotate_button=args.rotate_button,
        )
    except ValueError as exc:
        parser.error(str(exc))

    server = HostServer(config)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
