"""Discord role bot: slash commands, button panels, reaction panels and autorole."""

__version__ = "1.0.0"
