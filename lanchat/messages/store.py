"""
Chat Message Storage

Design Decision: Storage Format
===============================

Options Considered:
1. Single JSON file, rewritten on every change
   - Human readable, trivial to back up or inspect
   - Fine for a bounded history on one LAN

2. SQLite
   - Queryable, but nothing here needs queries

Decision: Single JSON file
- Layout: {"messages": [{"id", "user", "message", "timestamp"}, ...]}
- History is capped (oldest messages are dropped first)
- Writes go to a temp file, then replace the real one
"""

import asyncio
import json
import logging
import random
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

# Keep the file from growing without bound
MAX_MESSAGES = 1000

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def generate_message_id() -> str:
    return str(random.randint(100000, 999999))


def current_timestamp() -> str:
    return datetime.now().strftime(TIMESTAMP_FORMAT)


@dataclass
class Message:
    """A single chat message."""
    user: str
    message: str
    id: str = ""
    timestamp: str = ""

    def __post_init__(self):
        if not self.id:
            self.id = generate_message_id()
        if not self.timestamp:
            self.timestamp = current_timestamp()

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'Message':
        return cls(
            user=str(data.get('user', '')),
            message=str(data.get('message', '')),
            id=str(data.get('id', '')),
            timestamp=str(data.get('timestamp', '')),
        )


class MessageStore:
    """
    Bounded, file-backed chat history.

    Every mutation is saved immediately.
    """

    def __init__(self, path: Path, max_messages: int = MAX_MESSAGES):
        """
        Args:
            path: JSON file holding the history
            max_messages: Newest messages kept on trim
        """
        self.path = Path(path)
        self.max_messages = max_messages
        self._messages: List[Message] = []
        self._lock = asyncio.Lock()

    async def load(self):
        """Load history from disk (missing or corrupt file -> empty)."""
        async with self._lock:
            self._messages = []

            if not self.path.exists():
                logger.info(f"No existing message file at {self.path}, starting fresh")
                return

            try:
                async with aiofiles.open(self.path, 'r', encoding='utf-8') as f:
                    data = json.loads(await f.read())

                self._messages = [
                    Message.from_dict(m)
                    for m in data.get('messages', [])
                    if isinstance(m, dict)
                ]
                logger.info(f"Loaded {len(self._messages)} messages from {self.path}")
            except (OSError, ValueError, AttributeError) as e:
                logger.error(f"Error loading messages from {self.path}: {e}")
                self._messages = []

    async def add(self, user: str, text: str) -> Message:
        """Append a message, trim the history and save."""
        message = Message(user=user, message=text)

        async with self._lock:
            self._messages.append(message)
            if len(self._messages) > self.max_messages:
                del self._messages[: len(self._messages) - self.max_messages]
            await self._save()

        return message

    async def list_messages(self, limit: Optional[int] = None) -> List[Message]:
        """All messages, or the newest ``limit``, oldest first."""
        async with self._lock:
            if limit is None or limit >= len(self._messages):
                return list(self._messages)
            if limit <= 0:
                return []
            return self._messages[-limit:]

    async def count(self) -> int:
        async with self._lock:
            return len(self._messages)

    async def clear(self):
        """Drop all messages and save the empty history."""
        async with self._lock:
            self._messages = []
            await self._save()

    async def _save(self):
        """Write the history to disk; caller holds the lock."""
        payload = json.dumps(
            {'messages': [m.to_dict() for m in self._messages]},
            indent=2,
        )
        temp_path = self.path.with_suffix(self.path.suffix + '.tmp')

        try:
            await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
            async with aiofiles.open(temp_path, 'w', encoding='utf-8') as f:
                await f.write(payload)
            await aiofiles.os.replace(temp_path, self.path)
        except OSError as e:
            logger.error(f"Error saving messages to {self.path}: {e}")
