"""
API Module - REST API for the LAN chat node

Provides HTTP endpoints for chat messages and discovered peers.
"""

from .rest import create_app, run_api_server

__all__ = ['create_app', 'run_api_server']
