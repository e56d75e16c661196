"""
WebSocket events and connection handling for the Secret Butler game.
"""

from .events import *
