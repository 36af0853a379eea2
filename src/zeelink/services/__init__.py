"""Domain services for the Zeelink campus backend."""
