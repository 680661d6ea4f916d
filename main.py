"""Throne Saga - launcher. Serves the game API, or plays a game in the terminal."""

import argparse
import asyncio
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "4000"))


def _play(data_dir: Path, server: str | None) -> None:
    from backend.settings import load_settings
    from backend.services import illustrator, init_services, story_teller
    from throne_saga.client import ApiClient
    from throne_saga.saves import JsonFileBlobStore, SaveStore
    from throne_saga.session import GameSession
    from throne_saga.terminal import TerminalGame

    settings = load_settings()
    if server:
        client = ApiClient(server, timeout=settings.timeout)
        story, images = client, client
    else:
        init_services(settings)
        story, images = story_teller(), illustrator()
    session = GameSession(
        story, images, SaveStore(JsonFileBlobStore(data_dir)), settings.game,
    )
    asyncio.run(TerminalGame(session).run())


def main():
    parser = argparse.ArgumentParser(description="Throne Saga launcher")
    parser.add_argument("--host", default=HOST, help=f"Bind address (default: {HOST})")
    parser.add_argument("--port", type=int, default=PORT, help=f"Port (default: {PORT})")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Save storage directory (default: ./data)")
    parser.add_argument("--reload", action="store_true",
                        help="Restart the server when source files change")
    parser.add_argument("--play", action="store_true",
                        help="Play in the terminal instead of serving the API")
    parser.add_argument("--server", default=None,
                        help="With --play: use a running game service at this URL")
    args = parser.parse_args()

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    data_dir = args.data_dir or Path(os.getenv("DATA_DIR", str(ROOT / "data")))
    if args.play:
        _play(data_dir, args.server)
        return

    import uvicorn

    # The app module reads DATA_DIR at import time
    os.environ["DATA_DIR"] = str(data_dir.resolve())
    print(f"Starting game service on http://localhost:{args.port} ...")
    uvicorn.run("backend.app:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
