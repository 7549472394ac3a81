"""Integration adapters: storage, upstream fetching, Telegram delivery and commands."""
