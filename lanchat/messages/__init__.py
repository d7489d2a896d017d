"""
Messages Module - Chat history persistence
"""

from .store import Message, MessageStore

__all__ = ['Message', 'MessageStore']
