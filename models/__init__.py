"""Data models for the Emeralds Killfeed path repair engine."""
