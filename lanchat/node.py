"""
LAN Chat Node - Main Controller

Ties the two halves of a node together:
- Message store behind the HTTP API
- Peer discovery on the LAN
"""

import asyncio
import logging
from typing import Optional, List

from .config import Config
from .discovery import PeerDiscovery, PeerRecord
from .messages import Message, MessageStore

logger = logging.getLogger(__name__)


class ChatNode:
    """
    A complete LAN chat node.

    - post_message / list_messages / clear_messages: chat history
    - get_peers(): peers currently announcing on the LAN
    """

    def __init__(self, config: Config = None,
                 discovery: Optional[PeerDiscovery] = None):
        """
        Initialize a chat node.

        Args:
            config: Node configuration (uses defaults if not provided)
            discovery: Pre-built discovery service (built from config if not provided)
        """
        self.config = config or Config()

        self.messages = MessageStore(
            self.config.data_file,
            max_messages=self.config.max_messages,
        )

        self.discovery = discovery or PeerDiscovery(
            port=self.config.discovery_port,
            announce_interval=self.config.announce_interval,
            liveness_threshold=self.config.liveness_threshold,
            receive_timeout=self.config.receive_timeout,
            sweep_interval=self.config.sweep_interval,
            broadcast_address=self.config.broadcast_address,
        )

        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def peer_id(self) -> str:
        return self.discovery.get_peer_id()

    async def start(self):
        """Load chat history and start LAN discovery."""
        if self._running:
            return

        logger.info(f"Starting chat node {self.peer_id}...")

        await self.messages.load()

        if self.config.auto_discover:
            self.discovery.start()

        self._running = True

        logger.info("Chat node started")
        logger.info(f"  Peer ID: {self.peer_id}")
        logger.info(f"  Discovery Port: {self.config.discovery_port}")
        logger.info(f"  Data File: {self.config.data_file}")

    async def stop(self):
        """Stop the node."""
        if not self._running:
            return

        logger.info("Stopping chat node...")

        self._running = False

        # stop() joins the discovery threads, keep it off the event loop
        await asyncio.to_thread(self.discovery.stop)

        logger.info("Chat node stopped")

    # === Messages ===

    async def post_message(self, user: str, text: str) -> Message:
        message = await self.messages.add(user, text)
        logger.info(f"Message {message.id} from {user}")
        return message

    async def list_messages(self, limit: Optional[int] = None) -> List[Message]:
        return await self.messages.list_messages(limit)

    async def clear_messages(self):
        await self.messages.clear()
        logger.info("Chat history cleared")

    # === Network Info ===

    def get_peers(self) -> List[PeerRecord]:
        """Get peers currently alive on the LAN."""
        return self.discovery.get_active_peers()

    async def get_stats(self) -> dict:
        """Get complete node statistics."""
        return {
            'peer_id': self.peer_id,
            'running': self._running,
            'messages': await self.messages.count(),
            'discovery': self.discovery.get_stats(),
        }


async def run_node(config: Config = None):
    """
    Run a chat node without the HTTP API (convenience function).

    Starts the node and runs until interrupted.
    """
    node = ChatNode(config)

    try:
        await node.start()

        # Keep running
        while True:
            await asyncio.sleep(1)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        await node.stop()
