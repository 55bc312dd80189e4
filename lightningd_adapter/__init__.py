"""Core Lightning (lightningd) adapter.

Proxies and normalizes a single lightningd node: RPC calls over the daemon's
unix socket, state and amount normalization, and consumption of the daemon's
broker-delivered event stream.
"""

__version__ = "0.1.0"
