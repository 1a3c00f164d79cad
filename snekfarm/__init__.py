"""A farm of Battlesnakes that sense the board and react to it."""

__version__ = "0.1.0"
