"""Sentence-level re-segmentation of a streamed model reply.

Model output arrives in arbitrary increments. Speech synthesis on the relay side
starts as soon as it receives text, so we forward whole sentences as early as
possible and flush whatever is left when the stream ends.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from relay.messages import Fragment

JAPANESE_TERMINALS = frozenset("。！？")


class SentenceSegmenter:
    """Buffers increments and cuts them at sentence-terminal marks.

    Every emitted fragment carries its terminating mark. A run of consecutive
    marks stays attached to the sentence it closes, and a run left at the head
    of the buffer (because its sentence was already emitted) goes out on its
    own, so no non-terminal fragment is ever empty.
    """

    def __init__(self, terminals: Iterable[str] = JAPANESE_TERMINALS) -> None:
        self._terminals = frozenset(terminals)
        if not self._terminals:
            raise ValueError("At least one terminal mark is required.")
        self._buffer = ""
        self._parts: list[str] = []
        self._flushed = False

    @property
    def full_text(self) -> str:
        """Everything fed so far."""

        return "".join(self._parts)

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, increment: str) -> list[Fragment]:
        """Add an increment and return the sentences it completed."""

        if self._flushed:
            raise RuntimeError("Segmenter already flushed.")
        if not increment:
            return []

        self._buffer += increment
        self._parts.append(increment)

        fragments: list[Fragment] = []
        while True:
            end = self._sentence_end()
            if end is None:
                break
            fragments.append(Fragment(self._buffer[:end]))
            self._buffer = self._buffer[end:]
        return fragments

    def flush(self) -> Fragment:
        """Return the single terminal fragment; may carry an empty token."""

        if self._flushed:
            raise RuntimeError("Segmenter already flushed.")
        self._flushed = True
        remainder, self._buffer = self._buffer, ""
        return Fragment(remainder, last=True)

    def _sentence_end(self) -> int | None:
        # Index just past the first run of terminal marks currently buffered.
        for index, char in enumerate(self._buffer):
            if char in self._terminals:
                end = index + 1
                while end < len(self._buffer) and self._buffer[end] in self._terminals:
                    end += 1
                return end
        return None


def segment(
    increments: Iterable[str],
    terminals: Iterable[str] = JAPANESE_TERMINALS,
) -> Iterator[Fragment]:
    """Lazily yield every fragment for a finite stream, terminal one last."""

    segmenter = SentenceSegmenter(terminals)
    for increment in increments:
        yield from segmenter.feed(increment)
    yield segmenter.flush()
