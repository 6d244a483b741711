"""ta-agi-doorbell — opens doors on a TA CMI when asked by an authenticated Asterisk dialplan."""

__version__ = "1.0.0"
