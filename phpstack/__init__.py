"""phpstack — multi-version PHP provisioning for a single developer account."""

__version__ = "0.1.0"
