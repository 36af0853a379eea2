"""Command line helpers for operating a Zeelink deployment."""
