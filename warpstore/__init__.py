"""Persistence of named warp locations for a game server."""

__version__ = "0.1.0"
