"""Battle domain services: board, matchmaking, sessions and turn timers.

This package holds the game mechanics that the socket handlers call into,
keeping transport concerns separated from the rules of the game.
"""
