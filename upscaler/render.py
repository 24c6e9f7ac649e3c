import math
from pathlib import Path
from typing import Any, Dict, Tuple

from PIL import Image, ImageFilter, UnidentifiedImageError

from .errors import MetadataError


Size = Tuple[int, int]

QUALITY = 90

# Mild unsharp mask to counter the softness Lanczos upsampling introduces.
SHARPEN = ImageFilter.UnsharpMask(radius=1, percent=80, threshold=2)


def round_half_up(value: float) -> int:
    """
    Round half away from zero (151.5 -> 152), unlike Python's banker's `round`.
    """
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def target_size(width: int, height: int, scale: float) -> Size:
    """
    Scaled dimensions, each rounded half away from zero and at least 1 pixel.
    """
    return (
        max(1, round_half_up(width * scale)),
        max(1, round_half_up(height * scale)),
    )


def read_dimensions(path: Path) -> Size:
    try:
        with Image.open(path) as img:
            width, height = img.size
    except (UnidentifiedImageError, OSError) as exc:
        raise MetadataError(f"Invalid image metadata: {exc}") from exc

    if not width or not height or width < 0 or height < 0:
        raise MetadataError("Invalid image metadata")
    return width, height


def output_format(ext: str) -> Tuple[str, Dict[str, Any]]:
    """
    Map the original file extension to a Pillow format and save options.

    `.png` stays lossless, `.webp` is re-encoded at quality 90, and anything
    else (including `.jpg`/`.jpeg`) becomes JPEG at quality 90.
    """
    ext = ext.lower()
    if ext == ".png":
        return "PNG", {}
    if ext == ".webp":
        return "WEBP", {"quality": QUALITY}
    return "JPEG", {"quality": QUALITY}


def resize_image(input_path: Path, scale: float, output_path: Path) -> Tuple[Size, Size]:
    """
    Upscale `input_path` by `scale` into `output_path`.

    Uses the 3-lobe Lanczos kernel followed by a sharpening pass, then encodes
    according to the output file extension. Returns (original, new) sizes.
    """
    width, height = read_dimensions(input_path)
    new_size = target_size(width, height, scale)
    print(f"📐 Resizing {width}x{height} -> {new_size[0]}x{new_size[1]}")

    save_format, save_options = output_format(output_path.suffix)

    with Image.open(input_path) as img:
        img = _normalize_mode(img)
        resized = img.resize(new_size, Image.LANCZOS).filter(SHARPEN)

    # JPEG has no alpha channel.
    if save_format == "JPEG" and resized.mode != "RGB":
        resized = resized.convert("RGB")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    resized.save(output_path, format=save_format, **save_options)
    print(f"✅ Upscaled image saved to {output_path}")
    return (width, height), new_size


def _normalize_mode(img: Image.Image) -> Image.Image:
    """
    Convert palette and other exotic modes so resampling filters can run.
    """
    if img.mode in ("L", "RGB", "RGBA"):
        return img
    has_alpha = "A" in img.getbands() or "transparency" in img.info
    return img.convert("RGBA" if has_alpha else "RGB")
