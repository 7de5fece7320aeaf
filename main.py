"""Solo RPG engine launcher. Serves the HTTP API with uvicorn."""

import argparse
import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "13013"))


def main():
    parser = argparse.ArgumentParser(description="Solo RPG engine server")
    parser.add_argument("--host", default=HOST, help=f"Bind address (default: {HOST})")
    parser.add_argument("--port", type=int, default=PORT, help=f"Port (default: {PORT})")
    parser.add_argument("--config", type=Path, default=None,
                        help="JSON config file (default: ./solorpg.json)")
    parser.add_argument("--provider", choices=["anthropic", "gemini", "echo"], default=None,
                        help="Override the configured LLM provider")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # The app reads its settings from the environment when uvicorn imports it
    if args.config:
        os.environ["SOLORPG_CONFIG"] = str(args.config.resolve())
    if args.provider:
        os.environ["SOLORPG_PROVIDER"] = args.provider

    print(f"Starting engine on http://localhost:{args.port} ...")
    uvicorn.run("solorpg.app:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
