"""Per-client request limits (slowapi), keyed on the remote address.

The limiter is attached to ``app.state`` in main.py; the scheduler route
carries its own tighter limit.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
)
