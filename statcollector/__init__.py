"""TF2 stat collector: a polite, restart-safe Steam profile crawler."""
