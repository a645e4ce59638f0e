"""Metadata collaborator protocol and buffer decoding.

A metadata provider answers get_metadata(token_id, preferred_transport) with a
fixed-size raw buffer (a run of fixed-width words) and the number of
meaningful bytes in it. The registry turns that into a URI by taking exactly
that many bytes, which may end part-way through a word.
"""

from __future__ import annotations

from typing import Protocol, Sequence, Tuple, Union, runtime_checkable

from sneakerchain.errors import Overflow, ValidationError

RawBuffer = Union[bytes, bytearray, Sequence[bytes]]

DEFAULT_WORDS = 4
DEFAULT_WORD_SIZE = 32


@runtime_checkable
class MetadataProvider(Protocol):
    def get_metadata(self, token_id: int, preferred_transport: str) -> Tuple[RawBuffer, int]: ...


def _flatten(buffer: RawBuffer) -> bytes:
    if isinstance(buffer, (bytes, bytearray)):
        return bytes(buffer)
    return b"".join(bytes(word) for word in buffer)


def decode_metadata(buffer: RawBuffer, length: int) -> str:
    """Decode the first `length` bytes of a metadata buffer as UTF-8 text."""
    raw = _flatten(buffer)
    if isinstance(length, bool) or not isinstance(length, int) or length < 0:
        raise ValidationError("length", "Must be a non-negative integer", length)
    if length > len(raw):
        raise Overflow("length", length, len(raw) * 8)
    try:
        return raw[:length].decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValidationError("metadata", f"Not valid UTF-8: {e.reason}") from e


def encode_metadata(
    text: str,
    words: int = DEFAULT_WORDS,
    word_size: int = DEFAULT_WORD_SIZE,
) -> Tuple[bytes, int]:
    """Pack text into a zero-padded buffer of `words * word_size` bytes."""
    data = text.encode("utf-8")
    capacity = words * word_size
    if len(data) > capacity:
        raise Overflow("metadata", len(data), capacity * 8)
    return data.ljust(capacity, b"\x00"), len(data)


class StaticMetadataProvider:
    """Serves '<transport>://<base_uri>/<token_id>' for every token."""

    def __init__(
        self,
        base_uri: str,
        default_transport: str = "https",
        words: int = DEFAULT_WORDS,
        word_size: int = DEFAULT_WORD_SIZE,
    ):
        self.base_uri = base_uri.strip("/")
        self.default_transport = default_transport
        self.words = words
        self.word_size = word_size

    def uri_for(self, token_id: int, preferred_transport: str = "") -> str:
        transport = (preferred_transport or self.default_transport).strip().lower()
        return f"{transport}://{self.base_uri}/{token_id}"

    def get_metadata(self, token_id: int, preferred_transport: str) -> Tuple[bytes, int]:
        return encode_metadata(
            self.uri_for(token_id, preferred_transport),
            words=self.words,
            word_size=self.word_size,
        )

    @classmethod
    def from_config(cls) -> "StaticMetadataProvider":
        from sneakerchain.config import get_config

        meta = get_config().metadata
        return cls(
            base_uri=meta.base_uri.get(),
            default_transport=meta.default_transport.get(),
            words=meta.buffer_words.get(),
            word_size=meta.word_size.get(),
        )
