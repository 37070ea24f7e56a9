"""URL shortener with password-gated redirects and click analytics."""

__version__ = "1.0.0"
