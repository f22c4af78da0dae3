"""Language server process supervision.

JSON-RPC transport over the server's stdio, the process supervisor and the
progress listener bound to the server's custom progress notifications.
"""

from .progress import ProgressListener, ProgressSession, ProgressState
from .supervisor import ProcessSupervisor, ServerProcessHandle
from .transport import JsonRpcConnection, ResponseError

__all__ = [
    "JsonRpcConnection",
    "ProcessSupervisor",
    "ProgressListener",
    "ProgressSession",
    "ProgressState",
    "ResponseError",
    "ServerProcessHandle",
]
