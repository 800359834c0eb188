"""Telegram, Bot API, and JSON storage adapters implementing the core ports."""
