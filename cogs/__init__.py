"""Discord cogs for the Emeralds Killfeed path repair bot."""
