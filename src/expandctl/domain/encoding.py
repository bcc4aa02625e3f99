"""Re-encode raw expansion output into the compiler's canonical encoding.

The transform is lossless for every character representable in both
encodings. Anything else rejects the run with EncodingLoss instead of
writing a corrupted source.
"""

from __future__ import annotations

import codecs

from expandctl.domain.errors import ConfigurationError, EncodingLoss
from expandctl.domain.sources import ExpandedSource, NormalizedSource

DEFAULT_CANONICAL_ENCODING = "utf-8"


def resolve_encoding(name: str) -> str:
    """Return the codec's canonical name, or raise ConfigurationError."""
    try:
        return codecs.lookup(name).name
    except LookupError as exc:
        msg = f"Unknown text encoding: {name!r}"
        raise ConfigurationError(msg) from exc


def normalize(
    source: ExpandedSource,
    canonical: str = DEFAULT_CANONICAL_ENCODING,
) -> NormalizedSource:
    """Decode *source* under its declared encoding and re-encode as *canonical*.

    Empty payloads normalize to empty output; detecting a failed expansion
    is the expander's job.
    """
    source_encoding = resolve_encoding(source.encoding)
    target_encoding = resolve_encoding(canonical)

    if source.is_empty:
        return NormalizedSource(data=b"", encoding=target_encoding)

    try:
        text = source.payload.decode(source_encoding)
    except UnicodeDecodeError as exc:
        msg = (
            f"Expansion output is not valid {source_encoding} "
            f"(byte offset {exc.start}: {exc.reason})"
        )
        raise EncodingLoss(msg) from exc

    try:
        data = text.encode(target_encoding)
    except UnicodeEncodeError as exc:
        bad = text[exc.start : exc.end]
        msg = (
            f"Characters {bad!r} at offset {exc.start} cannot be represented "
            f"in {target_encoding}"
        )
        raise EncodingLoss(msg) from exc

    return NormalizedSource(data=data, encoding=target_encoding)
