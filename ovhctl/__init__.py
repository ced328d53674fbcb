"""
ovhctl - A command line interface to interact with the OVHcloud API.

This package signs requests the way the OVHcloud API expects and drives
the delegated-authentication handshake that produces consumer keys.
"""

__version__ = "0.2.0"
