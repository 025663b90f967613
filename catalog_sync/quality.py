"""Quality ranking for player links.

Free-text quality labels ("1080p", "WEB-DL 720", "CAMRip", "HD") are mapped to
a numeric rank so candidates from different providers can be ordered. The
rank is an ordering contract: a higher-resolution or non-cam label always
sorts first.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")

CAM_RANK = -10

_CAM_RE = re.compile(
    r"\b(cam|camrip|hdcam|ts|tsrip|hdts|telesync|tc|telecine)\b", re.IGNORECASE
)
_UHD_RE = re.compile(r"(4k|2160)", re.IGNORECASE)
_P_RE = re.compile(r"(\d{3,4})\s*p\b", re.IGNORECASE)
_BARE_RE = re.compile(r"\b(360|480|540|576|720|1080|1440|2160)\b")


def quality_score(label) -> int:
    """
    Rank a quality label.

    - empty or missing: 0
    - cam / telesync / telecine sources: -10, below every legitimate quality
    - 4K / 2160: 2160
    - explicit "NNNp": NNN
    - a bare standard resolution number: that number
    - any other text: 1
    """
    s = label if isinstance(label, str) else (str(label) if label is not None else "")
    s = s.strip()
    if not s:
        return 0

    if _CAM_RE.search(s):
        return CAM_RANK
    if _UHD_RE.search(s):
        return 2160

    m = _P_RE.search(s)
    if m:
        return int(m.group(1))

    m = _BARE_RE.search(s)
    if m:
        return int(m.group(1))

    return 1


def sort_by_quality(items: Iterable[T], key: Callable[[T], object]) -> list[T]:
    """Best quality first; ties keep their input order."""
    return sorted(items, key=lambda item: quality_score(key(item)), reverse=True)
