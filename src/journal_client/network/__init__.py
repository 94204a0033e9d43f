"""
Network Module

Provides the connectivity heuristic and the resilient HTTP request executor.
"""

from .connectivity import ConnectivityMonitor
from .request_executor import RequestExecutor, RetryContext

__all__ = ['ConnectivityMonitor', 'RequestExecutor', 'RetryContext']
