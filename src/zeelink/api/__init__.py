"""HTTP API for the Zeelink campus backend."""
