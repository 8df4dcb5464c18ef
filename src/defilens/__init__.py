"""Ethereum address annotations for any text editor that speaks LSP."""

__version__ = "0.1.0"
