"""CryptoPulse - technical indicators for crypto markets."""

__version__ = "0.1.0"
