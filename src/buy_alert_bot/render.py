from __future__ import annotations

from io import BytesIO

from PIL import Image, ImageDraw, ImageFont

from .formatting import format_amount, short_address

CARD_W = 1200
CARD_H = 630
BACKGROUND = (12, 14, 22, 255)
ACCENT = (38, 222, 129, 255)
TEXT = (240, 240, 240, 255)
MUTED = (150, 156, 170, 255)


def _font(size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    try:
        return ImageFont.load_default(size=size)
    except TypeError:
        # Pillow < 10.1 only ships the fixed-size bitmap font.
        return ImageFont.load_default()


def render_alert_image(
    amount: float | None,
    mint: str | None,
    signature: str | None,
    symbol: str = "NC",
) -> bytes:
    """Draw the buy card shown with the social post and the overlay."""
    canvas = Image.new("RGBA", (CARD_W, CARD_H), BACKGROUND)
    draw = ImageDraw.Draw(canvas)

    draw.rectangle((0, 0, CARD_W, 18), fill=ACCENT)
    draw.text((60, 80), "NEW BUY", font=_font(64), fill=ACCENT)
    draw.text((60, 200), f"{format_amount(amount)} {symbol}", font=_font(110), fill=TEXT)
    draw.text((60, 420), f"Mint: {short_address(mint)}", font=_font(36), fill=MUTED)
    draw.text((60, 480), f"Tx: {short_address(signature)}", font=_font(36), fill=MUTED)

    out = BytesIO()
    canvas.save(out, format="PNG")
    return out.getvalue()
