"""Coinbase Wallet UI knowledge: selectors and multi-step flows."""
