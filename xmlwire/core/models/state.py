import asyncio
from dataclasses import dataclass, field


@dataclass
class ServerState:
    """
    Shared runtime state for an XmlRpcServer.

    This object is mutated by:
    - XmlRpcHandler: registers a task for each dispatched call
    - XmlRpcServer.shutdown(): reports the calls still running and the
      ones cancelled by the shutdown timeout
    """
    tasks: set[asyncio.Task] = field(default_factory=set)
    """
    Set of in-flight method dispatch tasks.
    Each task must be registered and later removed via a
    task.add_done_callback(tasks.discard) to enable clean shutdown.
    """
