"""Rasterize a receipt summary to PNG with Pillow."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

from PIL import Image, ImageDraw, ImageFont

from squadpay.core.constants import RECEIPT_IMAGE_SCALE
from squadpay.payments import PAID, PARTIAL
from squadpay.roster.utils import format_amount

if TYPE_CHECKING:
    from .services import ReceiptSummary

# Layout in logical pixels; everything is multiplied by the scale.
WIDTH = 420
PADDING = 28
LINE_GAP = 10

WHITE = (255, 255, 255)
INK = (15, 23, 42)
MUTED = (100, 116, 139)
RULE = (226, 232, 240)
BRAND = (16, 185, 129)

# status -> (background, text, border)
BADGE_COLORS = {
    PAID: ((209, 250, 229), (4, 120, 87), (110, 231, 183)),
    PARTIAL: ((254, 243, 199), (180, 83, 9), (252, 211, 77)),
}
PENDING_BADGE = ((255, 228, 230), (190, 18, 60), (253, 164, 175))


def _font(size, scale, bold=False):
    name = "DejaVuSans-Bold.ttf" if bold else "DejaVuSans.ttf"
    try:
        return ImageFont.truetype(name, size * scale)
    except IOError:
        return ImageFont.load_default(size * scale)


class _Canvas:
    """Top-to-bottom writer that tracks the current baseline."""

    def __init__(self, draw: ImageDraw.ImageDraw, scale: int) -> None:
        self.draw = draw
        self.scale = scale
        self.y = PADDING * scale

    def s(self, value: float) -> int:
        return int(value * self.scale)

    def text(self, value, font, fill=INK, x=PADDING, align_right=False) -> int:
        left, top, right, bottom = self.draw.textbbox((0, 0), value, font=font)
        width = right - left
        pos_x = self.s(WIDTH - PADDING) - width if align_right else self.s(x)
        self.draw.text((pos_x, self.y), value, font=font, fill=fill)
        return bottom - top

    def row(self, label, value, label_font, value_font, fill=INK) -> None:
        height = max(
            self.text(label, label_font, fill=MUTED),
            self.text(value, value_font, fill=fill, align_right=True),
        )
        self.y += height + self.s(LINE_GAP)

    def line(self, value, font, fill=INK) -> None:
        self.y += self.text(value, font, fill=fill) + self.s(LINE_GAP)

    def rule(self) -> None:
        self.y += self.s(LINE_GAP)
        self.draw.line(
            [(self.s(PADDING), self.y), (self.s(WIDTH - PADDING), self.y)],
            fill=RULE,
            width=max(1, self.scale),
        )
        self.y += self.s(LINE_GAP * 2)

    def badge(self, label, colors, font) -> None:
        background, fill, border = colors
        left, top, right, bottom = self.draw.textbbox((0, 0), label, font=font)
        pad_x, pad_y = self.s(10), self.s(4)
        box = (
            self.s(PADDING),
            self.y,
            self.s(PADDING) + (right - left) + pad_x * 2,
            self.y + (bottom - top) + pad_y * 2,
        )
        self.draw.rounded_rectangle(
            box, radius=self.s(10), fill=background, outline=border, width=self.scale
        )
        self.draw.text((box[0] + pad_x, box[1] + pad_y - top), label, font=font, fill=fill)
        self.y = box[3] + self.s(LINE_GAP)


def _draw(image: Image.Image, summary: ReceiptSummary, currency: str, brand: str, scale: int) -> int:
    """Draw the receipt and return the height actually used."""
    c = _Canvas(ImageDraw.Draw(image), scale)
    title = _font(20, scale, bold=True)
    heading = _font(14, scale, bold=True)
    body = _font(12, scale)
    small = _font(10, scale)

    c.line(brand, heading, fill=BRAND)
    c.line("Payment Receipt", title)
    c.line(summary["tournament_name"], body, fill=MUTED)
    c.badge(
        summary["status_label"],
        BADGE_COLORS.get(summary["status"], PENDING_BADGE),
        small,
    )
    c.row("Receipt", summary["receipt_id"], small, small)
    c.row("Issued", summary["issued_on"], small, small)
    if summary["payment_ref"]:
        c.row("Payment Ref", summary["payment_ref"], small, small)
    c.rule()

    c.row("Name", summary["name"], body, heading)
    if summary["team_name"]:
        c.row("Team", summary["team_name"], body, body)
    if summary["contact"]:
        c.row("Contact", summary["contact"], body, body)
    c.rule()

    c.row("Fee", f"{currency}{format_amount(summary['amount_due'])}", body, body)
    c.row("Paid", f"{currency}{format_amount(summary['amount_paid'])}", body, body, fill=BADGE_COLORS[PAID][1])
    c.row("Remaining", f"{currency}{format_amount(summary['remaining'])}", body, heading)
    c.rule()

    c.line(f"Generated by {brand}", small, fill=MUTED)
    return c.y + c.s(PADDING)


def render_receipt_png(
    summary: ReceiptSummary,
    currency: str = "₹",
    brand: str = "SquadPay",
    scale: int = RECEIPT_IMAGE_SCALE,
) -> bytes:
    """Render the receipt card as PNG bytes at ``scale`` times logical size."""
    # Draw on a tall canvas first, then crop to the content.
    image = Image.new("RGB", (WIDTH * scale, 900 * scale), WHITE)
    height = _draw(image, summary, currency, brand, scale)
    image = image.crop((0, 0, WIDTH * scale, min(height, image.height)))

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
