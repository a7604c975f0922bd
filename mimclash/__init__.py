"""
MimClash game server package.

Rooms, rounds, voting and the Socket.IO/REST surface around them.
"""

__version__ = '1.0.0'
