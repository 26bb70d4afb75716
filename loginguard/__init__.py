"""LoginGuard: login brute-force protection for FastAPI backends."""

__version__ = "0.1.0"
