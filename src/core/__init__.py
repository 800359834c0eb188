"""Core domain package for jobrelay.

Core contains keyword matching, the relay state machine, and the error
taxonomy without any Telegram or storage-specific code.
"""
