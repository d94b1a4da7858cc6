"""Two-player Bulls and Cows game server: game rules, Redis storage and a JSON HTTP API."""

__version__ = "0.1.0"