"""Core domain package for tweetwatch.

Core contains cursor tracking, filtering, delivery dedup and scheduling logic
without any Telegram, Nitter or storage-specific code, keeping the business
logic portable.
"""
