"""Application entrypoint."""

import asyncio
import sys

from .http_server import run_http_server


async def main() -> None:
    """Main application entrypoint."""
    await run_http_server()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutting down...")
        sys.exit(0)
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
