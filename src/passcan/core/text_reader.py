"""
Reads candidate files as text, classifying binary, oversized and
unreadable files instead of raising.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from passcan.core.report import SkipReason

logger = logging.getLogger(__name__)

DEFAULT_SNIFF_BYTES = 8000
DEFAULT_BINARY_RATIO = 0.30

# Bytes that commonly appear in text files: printable ASCII, the usual
# whitespace and control characters, ESC, and everything >= 0x80 (UTF-8).
_TEXT_BYTES = bytes({7, 8, 9, 10, 12, 13, 27} | set(range(0x20, 0x100)) - {0x7F})


@dataclass(frozen=True)
class TextReadResult:
    """Outcome of reading one file: either text or a skip reason."""

    text: str | None = None
    skip_reason: SkipReason | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.skip_reason is None


def looks_binary(sample: bytes, ratio_threshold: float = DEFAULT_BINARY_RATIO) -> bool:
    """
    Heuristic binary check on the first bytes of a file.

    A null byte, or a share of non-text bytes above ``ratio_threshold``,
    classifies the sample as binary. Empty samples are text.
    """
    if not sample:
        return False
    if b"\x00" in sample:
        return True
    non_text = sample.translate(None, _TEXT_BYTES)
    return len(non_text) / len(sample) > ratio_threshold


def read_text_file(
    path: Path,
    max_size: int | None = None,
    sniff_bytes: int = DEFAULT_SNIFF_BYTES,
    binary_ratio: float = DEFAULT_BINARY_RATIO,
) -> TextReadResult:
    """
    Read a file as UTF-8 text.

    Reads at most ``max_size + 1`` bytes, so a file that grew past the limit
    after enumeration is still caught and the read stays bounded.

    Args:
        path: File to read
        max_size: Size limit in bytes, None for unlimited
        sniff_bytes: Number of leading bytes inspected by the binary check
        binary_ratio: Non-text byte share above which a file is binary

    Returns:
        TextReadResult with text, or with the reason the file was skipped
    """
    try:
        with open(path, "rb") as f:
            data = f.read() if max_size is None else f.read(max_size + 1)
    except FileNotFoundError as e:
        logger.debug(f"File vanished before read: {path}")
        return TextReadResult(skip_reason=SkipReason.VANISHED, detail=str(e))
    except IsADirectoryError as e:
        return TextReadResult(skip_reason=SkipReason.UNREADABLE, detail=str(e))
    except PermissionError as e:
        logger.warning(f"Permission denied reading file: {path} - {e}")
        return TextReadResult(skip_reason=SkipReason.UNREADABLE, detail=str(e))
    except OSError as e:
        logger.warning(f"Error reading file: {path} - {e}")
        return TextReadResult(skip_reason=SkipReason.UNREADABLE, detail=str(e))

    if max_size is not None and len(data) > max_size:
        return TextReadResult(
            skip_reason=SkipReason.TOO_LARGE,
            detail=f"exceeds limit of {max_size} bytes",
        )

    if looks_binary(data[:sniff_bytes], binary_ratio):
        logger.debug(f"Skipping binary file: {path}")
        return TextReadResult(skip_reason=SkipReason.BINARY, detail="binary content detected")

    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        logger.warning(f"Failed to decode file as UTF-8: {path} - {e}")
        return TextReadResult(skip_reason=SkipReason.DECODE_ERROR, detail=str(e))

    return TextReadResult(text=text)
