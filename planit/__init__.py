"""Telegram bot that manages a Google Calendar through chat commands."""
