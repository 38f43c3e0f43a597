from io import BytesIO
from pathlib import Path

from PIL import Image

from config import settings


def load_image_bytes(image_ref: str, images_dir: str | None = None) -> bytes:
    """Reads a vehicle image from the images directory. Raises FileNotFoundError."""
    base = Path(images_dir or settings.IMAGES_DIR).resolve()
    path = (base / image_ref).resolve()
    # No escaping the images directory via "../"
    if base not in path.parents:
        raise FileNotFoundError(image_ref)
    return path.read_bytes()


def clue_box(width: int, height: int, zoom_percent: float, pos_x: float, pos_y: float) -> tuple[int, int, int, int]:
    """
    Visible region of the image for a CSS-style zoom.

    zoom_percent is the background-size (100 = whole image fits) and pos_x /
    pos_y are background-position percents: the point at pos% of the image
    lines up with pos% of the frame.
    """
    zoom = max(zoom_percent, 100) / 100.0
    crop_w = max(1, round(width / zoom))
    crop_h = max(1, round(height / zoom))

    fx = min(max(pos_x, 0.0), 100.0) / 100.0
    fy = min(max(pos_y, 0.0), 100.0) / 100.0
    left = round((width - crop_w) * fx)
    top = round((height - crop_h) * fy)
    return left, top, left + crop_w, top + crop_h


def crop_clue(image_bytes: bytes, zoom_percent: float, pos_x: float = 50.0, pos_y: float = 50.0, *, reveal: bool = False) -> bytes:
    """
    Returns the clue as PNG.
    - reveal=True (puzzle finished) => full image, no zoom.
    - Otherwise the zoomed crop is scaled back to the original size.
    """
    img = Image.open(BytesIO(image_bytes))
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA")

    if not reveal and zoom_percent > 100:
        w, h = img.size
        box = clue_box(w, h, zoom_percent, pos_x, pos_y)
        img = img.crop(box).resize((w, h), Image.Resampling.BILINEAR)

    out = BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()
