"""Download every video of a YouTube playlist as tagged audio and zip the result."""

__version__ = "0.1.0"
