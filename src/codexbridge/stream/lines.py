"""Reassemble newline-delimited text from arbitrarily chunked bytes."""

from __future__ import annotations


def split_lines(leftover: bytes, chunk: bytes) -> tuple[list[str], bytes]:
    """Split ``leftover + chunk`` into complete lines and a new leftover.

    Splitting happens on raw bytes, so a chunk boundary in the middle of a
    multi-byte UTF-8 sequence is harmless: the partial sequence stays in
    the leftover until its newline arrives.
    """
    data = leftover + chunk
    *complete, rest = data.split(b"\n")
    return [_decode(raw) for raw in complete], rest


def _decode(raw: bytes) -> str:
    if raw.endswith(b"\r"):
        raw = raw[:-1]
    return raw.decode("utf-8", errors="replace")


class LineReassembler:
    """Stateful wrapper around :func:`split_lines` for one stream."""

    def __init__(self) -> None:
        self._leftover = b""

    @property
    def pending(self) -> bytes:
        """Bytes received after the last newline."""
        return self._leftover

    def feed(self, chunk: bytes) -> list[str]:
        lines, self._leftover = split_lines(self._leftover, chunk)
        return lines

    def flush(self) -> list[str]:
        """End of stream: return the trailing fragment as a final line."""
        rest, self._leftover = self._leftover, b""
        if not rest:
            return []
        return [_decode(rest)]
