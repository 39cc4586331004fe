"""Paper-trading scalping bot: market data, tick loop and account storage."""
