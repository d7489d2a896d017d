"""
LAN Chat - a peer-discoverable chat service for the local network.
"""

__version__ = "1.0.0"
