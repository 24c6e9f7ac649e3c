import math
import posixpath
import re
from typing import Optional
from urllib.parse import urlparse

DEFAULT_SCALE = 2.0
DEFAULT_EXTENSION = ".jpg"

# "/upscale 2" or "/upscale 3.5"
SCALE_COMMAND = re.compile(r"/upscale\s+([0-9]*\.?[0-9]+)", re.IGNORECASE)

# Stops at whitespace, quotes, brackets and parentheses so markdown
# `![alt](https://...png)` and `<img src="...">` resolve to the bare URL.
IMAGE_URL = re.compile(
    r"https?://[^\s<>()\[\]\"']+\.(?:png|jpe?g|webp)\b",
    re.IGNORECASE,
)


def parse_scale(comment: str) -> float:
    """
    Extract the scale factor from a `/upscale N` comment.

    Falls back to DEFAULT_SCALE when there is no command, or when the number
    parses to zero or to a non-finite value.
    """
    match = SCALE_COMMAND.search(comment or "")
    if not match:
        return DEFAULT_SCALE

    scale = float(match.group(1))
    if scale <= 0 or not math.isfinite(scale):
        return DEFAULT_SCALE
    return scale


def find_image_url(body: str) -> Optional[str]:
    """
    Return the first (leftmost) image URL in the issue body, or None.
    """
    match = IMAGE_URL.search(body or "")
    return match.group(0) if match else None


def image_extension(url: str) -> str:
    ext = posixpath.splitext(urlparse(url).path)[1].lower()
    return ext or DEFAULT_EXTENSION


def format_scale(scale: float) -> str:
    """
    Render the scale exactly as applied: `2.0` -> "2", `1.2345678` -> "1.2345678".
    """
    if scale.is_integer():
        return str(int(scale))
    return repr(scale)
