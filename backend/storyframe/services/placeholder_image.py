from __future__ import annotations
"""Deterministic placeholder images rendered with Pillow."""

import hashlib
import io

from PIL import Image, ImageDraw, ImageFont

_MAX_SIDE = 2048
_MIN_SIDE = 64


def render_placeholder(
    prompt: str,
    width: int = 1024,
    height: int = 1024,
    label: str = "placeholder",
    variant: int = 0,
    transparent: bool = False,
) -> bytes:
    """Render a PNG whose colour and text depend only on the arguments.

    Same inputs always give byte-identical output.
    """
    width = max(_MIN_SIDE, min(_MAX_SIDE, int(width or 1024)))
    height = max(_MIN_SIDE, min(_MAX_SIDE, int(height or 1024)))

    digest = hashlib.sha256(f"{prompt}|{variant}".encode("utf-8")).digest()
    colour = (40 + digest[0] % 60, 40 + digest[1] % 60, 60 + digest[2] % 80)

    if transparent:
        img = Image.new("RGBA", (width, height), color=(0, 0, 0, 0))
        draw = ImageDraw.Draw(img)
        inset = min(width, height) // 8
        draw.rectangle(
            (inset, inset, width - inset, height - inset),
            fill=colour + (255,),
        )
    else:
        img = Image.new("RGB", (width, height), color=colour)
        draw = ImageDraw.Draw(img)

    font = ImageFont.load_default()
    text = prompt.replace("\n", " ")
    wrapped = text[:100] + "..." if len(text) > 100 else text
    draw.text((16, 16), f"[{label}] #{variant}", fill=(255, 255, 255), font=font)
    draw.text((16, 40), wrapped, fill=(200, 200, 230), font=font)

    buf = io.BytesIO()
    img.save(buf, "PNG")
    return buf.getvalue()
