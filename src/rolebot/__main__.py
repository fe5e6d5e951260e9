from __future__ import annotations

from dotenv import load_dotenv

from .bot import RoleBot
from .config import load_settings
from .logging_setup import setup_logging


def main() -> None:
    load_dotenv()
    settings = load_settings()
    setup_logging(settings.log_level)

    bot = RoleBot(settings)
    # Logging is already configured; stop discord.py from installing its own handler.
    bot.run(settings.token, log_handler=None)


if __name__ == "__main__":
    main()
