from pathlib import Path
from typing import Optional

import requests

from .errors import DownloadError
from .inputs import image_extension


USER_AGENT = "github-actions-upscale"


def download_image(
    url: str,
    scratch_dir: Path,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
) -> Path:
    """
    Download `url` into `scratch_dir/input<ext>` and return the file path.

    The scratch directory is created when missing; re-running overwrites the
    previous input file.
    """
    session = session or requests.Session()
    scratch_dir.mkdir(parents=True, exist_ok=True)
    input_path = scratch_dir / f"input{image_extension(url)}"

    print(f"📥 Downloading image to {input_path}")
    response = session.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    if not response.ok:
        raise DownloadError(f"Failed to download image: {response.status_code}")

    input_path.write_bytes(response.content)
    return input_path
