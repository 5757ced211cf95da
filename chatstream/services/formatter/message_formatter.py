"""
Incremental message formatter

The formatter accumulates content chunks and derives a display text from the
whole buffer on every update. All transitions are pure functions over an
immutable FormatterState; MessageFormatter keeps one state for callers that
want an object.

The display text is always recomputed from scratch, so repairs such as the
synthetic closing fence disappear on their own once the real fence arrives.
"""

import re
from dataclasses import dataclass, replace
from typing import Any, Dict, Tuple

from ...core.logging import logger


FENCE = "```"
INDENT = "    "

LIST_ITEM_PATTERN = re.compile(r'^\s*[-+*]\s+\S+.*$')
EXCESS_NEWLINES_PATTERN = re.compile(r'\n{3,}')


@dataclass(frozen=True)
class StreamChunk:
    """One fragment of message content. is_complete marks end of stream."""
    data: str
    is_complete: bool = False


@dataclass(frozen=True)
class FormattedMessage:
    """
    Result of a processing step.

    Attributes:
        text: Current display text
        is_complete: The message has been finalized
        needs_update: text differs from the previously returned text
    """
    text: str
    is_complete: bool
    needs_update: bool


@dataclass(frozen=True)
class FormatterState:
    buffer: str = ""
    current_text: str = ""
    is_complete: bool = False


INITIAL_STATE = FormatterState()


def format_text(text: str) -> str:
    """
    Derive display text from raw accumulated content.

    Closes an unterminated code fence, terminates a trailing list item with a
    newline and strips accidental four-space indentation outside fenced
    blocks. Pure and idempotent: ``format_text(format_text(x)) == format_text(x)``.
    """
    if not text.strip():
        return text

    formatted = text

    if formatted.count(FENCE) % 2 != 0:
        formatted += "\n" + FENCE

    last_line = formatted.split("\n")[-1]
    if LIST_ITEM_PATTERN.match(last_line):
        formatted += "\n"

    in_code_block = False
    processed_lines = []
    for line in formatted.split("\n"):
        if line.strip().startswith(FENCE):
            in_code_block = not in_code_block
            processed_lines.append(line)
        elif not in_code_block:
            # every leading indent group, otherwise a second pass would strip more
            while line.startswith(INDENT):
                line = line[len(INDENT):]
            processed_lines.append(line)
        else:
            processed_lines.append(line)

    return "\n".join(processed_lines)


def process_chunk(state: FormatterState, chunk: StreamChunk) -> Tuple[FormatterState, FormattedMessage]:
    """Apply one chunk to the state. Returns the new state and the step result."""
    if state.is_complete:
        logger.warning("Chunk received after message was finalized, ignoring",
                       component="message_formatter", chunk_length=len(chunk.data))
        return state, FormattedMessage(text=state.current_text, is_complete=True, needs_update=False)

    buffer = state.buffer + chunk.data

    if chunk.is_complete:
        current_text = format_text(buffer)
        new_state = FormatterState(buffer=buffer, current_text=current_text, is_complete=True)
        return new_state, FormattedMessage(text=current_text, is_complete=True, needs_update=True)

    new_text = format_text(buffer)
    needs_update = new_text != state.current_text
    current_text = new_text if needs_update else state.current_text

    new_state = FormatterState(buffer=buffer, current_text=current_text, is_complete=False)
    return new_state, FormattedMessage(text=current_text, is_complete=False, needs_update=needs_update)


def finalize_text(text: str) -> str:
    """Canonical final form: outer trim, at most one blank line in a row, one trailing newline."""
    final_text = text.strip()
    final_text = EXCESS_NEWLINES_PATTERN.sub("\n\n", final_text)
    if not final_text.endswith("\n"):
        final_text += "\n"
    return final_text


def finalize(state: FormatterState) -> Tuple[FormatterState, str]:
    """Mark the state complete and return the canonical final text. Safe to repeat."""
    if not state.is_complete:
        state = replace(state, is_complete=True)
    return state, finalize_text(state.current_text)


class MessageFormatter:
    """Mutable holder around FormatterState for a single logical message."""

    def __init__(self):
        self._state = INITIAL_STATE

    @property
    def state(self) -> FormatterState:
        return self._state

    @property
    def is_complete(self) -> bool:
        return self._state.is_complete

    def process_chunk(self, chunk: StreamChunk) -> FormattedMessage:
        self._state, result = process_chunk(self._state, chunk)
        return result

    def finalize(self) -> str:
        self._state, final_text = finalize(self._state)
        return final_text

    def reset(self):
        self._state = INITIAL_STATE

    def get_state(self) -> Dict[str, Any]:
        """Current state for debugging"""
        return {
            "buffer": self._state.buffer,
            "current_text": self._state.current_text,
            "is_complete": self._state.is_complete,
            "buffer_length": len(self._state.buffer),
        }
