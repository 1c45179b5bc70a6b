"""
Run the bot: python -m xcbot (or the xc-bot script).

Configuration comes from the environment / .env (see xcbot.config); the listen address from SERVER_LISTEN.
"""
import argparse
import sys

from xcbot import __version__

DESCRIPTION = "A chat bot that notifies about new paragliding cross-country flights published on XContest"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="xc-bot", description=DESCRIPTION)
    parser.add_argument("-v", "--version", action="version", version=f"xc-bot {__version__}")
    parser.add_argument(
        "--env-file",
        help="Path to a .env file with settings (default: backend/.env)",
    )
    args = parser.parse_args(argv)

    if args.env_file:
        from dotenv import load_dotenv

        # Before xcbot.config is imported, so Settings() sees these values
        load_dotenv(args.env_file, override=True)

    import uvicorn

    from xcbot.config import settings

    uvicorn.run("xcbot.main:app", host=settings.listen_host, port=settings.listen_port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
