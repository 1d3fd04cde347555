from typing import Optional, Tuple

from PIL import ImageColor


def parse_color(text: str) -> Optional[Tuple[int, ...]]:
    """Parse hex, rgb()/rgba(), hsl()/hsv() or a named CSS color."""
    if not text or "\n" in text:
        return None
    try:
        return ImageColor.getrgb(text)
    except ValueError:
        return None
