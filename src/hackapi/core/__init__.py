"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking layer under the router:

    SocketServer   listening socket, accept loop, SIGINT/SIGTERM
         │
         ▼ Connection per client
    ThreadPool     workers that serve connections concurrently
         │
         ▼
    Connection     buffered request reads, keep-alive, sendall()

=============================================================================
"""

from .connection import Connection, ConnectionState, RequestTooLarge
from .socket_server import SocketServer
from .thread_pool import ThreadPool, Task, Worker, WorkerState

__all__ = [
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "SocketServer",
    "ThreadPool",
    "Task",
    "Worker",
    "WorkerState",
]
