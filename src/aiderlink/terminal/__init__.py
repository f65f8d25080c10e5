"""Transport support for the assistant subprocess.

Provides the Transport protocol the session layer talks to, and a local
asyncio subprocess implementation.
"""

from aiderlink.terminal.handle import TransportHandle
from aiderlink.terminal.protocol import Transport
from aiderlink.terminal.subprocess_transport import SubprocessTransport, strip_ansi

__all__ = [
    "SubprocessTransport",
    "Transport",
    "TransportHandle",
    "strip_ansi",
]
