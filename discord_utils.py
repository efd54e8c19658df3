"""
CMDR Kael - Discord Utilities
Message splitting and chunked delivery helpers.
"""

import re
from typing import List

import discord

from constants import (
    CODE_FENCE, MAX_CHUNK_LENGTH, MORE_HINT, NEXT_HINT, END_HINT, NOTHING_QUEUED
)
from pending import PendingDeliveries

PARAGRAPH_BREAK = re.compile(r'\n{2,}')
SENTENCE_BREAK = re.compile(r'(?<=[.!?])\s+')
FENCE_CLOSE = "\n" + CODE_FENCE


# --- Message Splitting ---

class _Splitter:
    """Greedy accumulator: paragraph, then line, then sentence, then hard cut."""

    def __init__(self, max_length: int):
        self.max_length = max_length
        self.buffer = ""
        self.chunks: List[str] = []

    def _try_append(self, piece: str, sep: str) -> bool:
        candidate = f"{self.buffer}{sep}{piece}" if self.buffer else piece
        if len(candidate) <= self.max_length:
            self.buffer = candidate
            return True
        return False

    def flush(self):
        """Emit the buffer, closing an unterminated code fence."""
        while self.buffer:
            chunk = self.buffer
            if chunk.count(CODE_FENCE) % 2 and self.max_length > len(FENCE_CLOSE):
                if len(chunk) + len(FENCE_CLOSE) <= self.max_length:
                    self.chunks.append(chunk + FENCE_CLOSE)
                    self.buffer = ""
                    continue
                # no room for the closing fence: cut here, carry the rest over
                head = chunk[:self.max_length - len(FENCE_CLOSE)]
                self.chunks.append(head + FENCE_CLOSE if head.count(CODE_FENCE) % 2 else head)
                self.buffer = chunk[len(head):]
                continue
            self.chunks.append(chunk)
            self.buffer = ""

    def add_paragraph(self, paragraph: str):
        if self._try_append(paragraph, "\n\n"):
            return
        self.flush()
        if len(paragraph) <= self.max_length:
            self.buffer = paragraph
            return
        for line in paragraph.split("\n"):
            self.add_line(line)

    def add_line(self, line: str):
        if self._try_append(line, "\n"):
            return
        self.flush()
        if len(line) <= self.max_length:
            self.buffer = line
            return
        for sentence in SENTENCE_BREAK.split(line):
            self.add_sentence(sentence)

    def add_sentence(self, sentence: str):
        if self._try_append(sentence, " "):
            return
        self.flush()
        while len(sentence) > self.max_length:
            self.buffer = sentence[:self.max_length]
            self.flush()
            sentence = sentence[self.max_length:]
        self.buffer = sentence


def split_message(content: str, max_length: int = MAX_CHUNK_LENGTH) -> List[str]:
    """Split a long message into Discord-compatible chunks.

    Chunks never exceed max_length. Paragraph breaks are kept where a whole
    paragraph fits; otherwise the text falls back to lines, sentences and
    finally a hard cut. A chunk with an odd number of ``` markers gets a
    closing fence.
    """
    if not content:
        return []
    if max_length < 1:
        raise ValueError("max_length must be at least 1")
    if len(content) <= max_length:
        return [content]

    splitter = _Splitter(max_length)
    for paragraph in PARAGRAPH_BREAK.split(content):
        splitter.add_paragraph(paragraph)
    splitter.flush()
    return splitter.chunks


# --- Chunked Delivery ---

def get_user_display_name(user: discord.User | discord.Member) -> str:
    """Get the best display name for a user."""
    if hasattr(user, 'display_name') and user.display_name:
        return user.display_name
    return user.name


async def deliver_in_chunks(message: discord.Message, content: str,
                            pending: PendingDeliveries, max_length: int = MAX_CHUNK_LENGTH) -> int:
    """Reply with the first chunk and queue the rest behind a "more" prompt.

    Returns the number of chunks produced.
    """
    chunks = split_message(content, max_length)
    if not chunks:
        return 0
    await message.reply(chunks[0])
    rest = chunks[1:]
    if rest:
        pending.enqueue(message.channel.id, rest)
        await message.reply(MORE_HINT)
    else:
        pending.clear(message.channel.id)
    return len(chunks)


async def deliver_next(message: discord.Message, pending: PendingDeliveries) -> bool:
    """Send the next queued chunk for the channel. False if nothing was queued."""
    channel_id = message.channel.id
    chunk = pending.pop_next(channel_id)
    if chunk is None:
        pending.clear(channel_id)
        await message.reply(NOTHING_QUEUED)
        return False
    await message.reply(chunk)
    await message.reply(NEXT_HINT if pending.has_more(channel_id) else END_HINT)
    return True
