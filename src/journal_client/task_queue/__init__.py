"""
Task Queue Module

Provides the offline request queue replayed when connectivity returns.
"""

from .offline_queue import OfflineQueue, QueuedRequest

__all__ = ['OfflineQueue', 'QueuedRequest']
