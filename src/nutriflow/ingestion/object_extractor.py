"""Streaming extraction of JSON objects from a chunked character stream.

FDC exports are a single JSON document of the form::

    {"FoundationFoods": [ {...}, {...}, ... ]}

Files reach several GB, so the document is never parsed as a whole. The
extractor reconstructs each element of the food array as a standalone JSON
string from a stream of chunks, keeping only the object currently being
assembled in memory.

DESIGN DECISIONS:
- Brace-depth state machine: brace_depth, in_string, escape_next and the
  in-flight buffer survive chunk boundaries, so an object split across any
  number of reads is rebuilt exactly
- Braces inside string values never count; escaped quotes never end a string
- Seeking phase: text before the first '[' is skipped, and the last string
  literal seen there is recorded as the array key ("FoundationFoods", ...)
- A ']' at depth zero closes the array; anything after it is ignored
- No JSON validation beyond brace/string balance; callers parse each object
  and count failures
- A partial object left open at end of stream is dropped and counted
"""

import logging
import re
from enum import Enum
from typing import Iterable, Iterator, List, Optional


logger = logging.getLogger(__name__)

# Only these characters can change extractor state.
_STATE_CHARS = re.compile(r'[{}\[\]"\\]')


class ExtractorPhase(Enum):
    SEEKING = "seeking"
    IN_ARRAY = "in_array"
    DONE = "done"


class StreamingObjectExtractor:
    """Rebuilds complete top-level array elements from streamed chunks.

    Usage:
        extractor = StreamingObjectExtractor()
        for chunk in read_chunks(path):
            for text in extractor.feed(chunk):
                food = json.loads(text)
        extractor.finish()
        print(extractor.array_key, extractor.dangling_objects)
    """

    def __init__(self):
        self.phase = ExtractorPhase.SEEKING
        self.brace_depth = 0
        self.in_string = False
        self.escape_next = False
        self.array_key: Optional[str] = None
        self.objects_emitted = 0
        self.dangling_objects = 0
        self._buffer: List[str] = []
        self._string_parts: List[str] = []
        self._last_string: Optional[str] = None
        self._finished = False

    def feed(self, chunk: str) -> List[str]:
        """Consume one chunk and return the objects it completed.

        Args:
            chunk: Next piece of the character stream

        Returns:
            Complete object texts, in stream order

        Raises:
            RuntimeError: If called after finish()
        """
        if self._finished:
            raise RuntimeError("Extractor already finished; create a new one")

        completed: List[str] = []
        if not chunk or self.phase is ExtractorPhase.DONE:
            return completed

        # Positions local to this chunk: -1 means "not inside one".
        object_start = 0 if self.brace_depth > 0 else -1
        string_start = 0 if self._capturing_string() else -1

        scan_from = 0
        if self.escape_next:
            # First character of this chunk was escaped at the end of the last one
            self.escape_next = False
            scan_from = 1
        skip_until = scan_from

        for match in _STATE_CHARS.finditer(chunk, scan_from):
            i = match.start()
            if i < skip_until:
                continue
            ch = chunk[i]

            if self.in_string:
                if ch == "\\":
                    if i + 1 < len(chunk):
                        skip_until = i + 2
                    else:
                        self.escape_next = True
                elif ch == '"':
                    self.in_string = False
                    if string_start >= 0:
                        self._string_parts.append(chunk[string_start:i])
                        self._last_string = "".join(self._string_parts)
                        self._string_parts = []
                        string_start = -1
                continue

            if ch == '"':
                self.in_string = True
                if self.phase is ExtractorPhase.SEEKING:
                    self._string_parts = []
                    string_start = i + 1
                continue

            if self.phase is ExtractorPhase.SEEKING:
                if ch == "[":
                    self.phase = ExtractorPhase.IN_ARRAY
                    self.array_key = self._last_string
                    logger.debug("Found object array (key=%r)", self.array_key)
                continue

            if ch == "{":
                if self.brace_depth == 0:
                    object_start = i
                self.brace_depth += 1
            elif ch == "}":
                if self.brace_depth == 0:
                    continue  # stray closer between elements
                self.brace_depth -= 1
                if self.brace_depth == 0:
                    self._buffer.append(chunk[object_start:i + 1])
                    completed.append("".join(self._buffer))
                    self._buffer = []
                    object_start = -1
                    self.objects_emitted += 1
            elif ch == "]" and self.brace_depth == 0:
                self.phase = ExtractorPhase.DONE
                break

        if self.brace_depth > 0 and object_start >= 0:
            self._buffer.append(chunk[object_start:])
        if string_start >= 0 and self.in_string:
            self._string_parts.append(chunk[string_start:])

        return completed

    def finish(self) -> bool:
        """Signal end of stream.

        Returns:
            True if a dangling partial object was discarded
        """
        self._finished = True
        dangling = self.brace_depth > 0
        if dangling:
            self.dangling_objects += 1
            logger.warning(
                "Discarding truncated object at end of stream (%d characters buffered)",
                self.buffered_characters,
            )
        self._buffer = []
        self._string_parts = []
        self.brace_depth = 0
        return dangling

    @property
    def buffered_characters(self) -> int:
        """Size of the in-flight partial object."""
        return sum(len(part) for part in self._buffer)

    def _capturing_string(self) -> bool:
        return self.phase is ExtractorPhase.SEEKING and self.in_string


def extract_objects(
    chunks: Iterable[str],
    extractor: Optional[StreamingObjectExtractor] = None
) -> Iterator[str]:
    """Generator over complete object texts in a chunk stream.

    Args:
        chunks: Character chunks in stream order
        extractor: Optional extractor instance, to inspect counters afterwards

    Yields:
        Object texts; finish() is called once the chunks are exhausted
    """
    extractor = extractor or StreamingObjectExtractor()
    for chunk in chunks:
        for text in extractor.feed(chunk):
            yield text
    extractor.finish()
