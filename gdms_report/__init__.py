"""GDMS organization, device and SIP account reporting."""

__version__ = "0.1.0"
