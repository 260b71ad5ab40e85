"""
Summary image rendering with Pillow.
"""

import os
from datetime import datetime
from typing import List, Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from config import settings
from logging_config import get_logger

logger = get_logger(__name__)

WIDTH = 800
HEIGHT = 600
TOP_LIMIT = 5

BACKGROUND = "#1a1a1a"
TITLE_COLOR = "#00ffcc"
TEXT_COLOR = "#ffffff"
MUTED_COLOR = "#aaaaaa"

FONT_DIR = "/usr/share/fonts/truetype/dejavu"


def _load_font(name: str, size: int):
    try:
        return ImageFont.truetype(os.path.join(FONT_DIR, name), size)
    except OSError:
        return ImageFont.load_default(size=size)


def top_countries_by_gdp(countries: Sequence, limit: int = TOP_LIMIT) -> List:
    """Countries with a non-zero estimated GDP, highest first."""
    ranked = [c for c in countries if c.estimated_gdp]
    ranked.sort(key=lambda c: c.estimated_gdp, reverse=True)
    return ranked[:limit]


def latest_refresh(countries: Sequence) -> datetime:
    return max((c.last_refreshed_at or datetime.min for c in countries), default=datetime.min)


def format_gdp(value: float) -> str:
    return f"${round(value):,}"


def build_summary_lines(countries: Sequence) -> List[str]:
    """Text drawn on the summary image, top to bottom."""
    lines = [
        "Global Country Summary",
        f"Total Countries: {len(countries)}",
        "Top 5 by Estimated GDP:",
    ]
    for i, country in enumerate(top_countries_by_gdp(countries), 1):
        lines.append(f"{i}. {country.name} - {format_gdp(country.estimated_gdp)}")

    last = latest_refresh(countries)
    last_str = "N/A" if last == datetime.min else last.strftime("%Y-%m-%d %H:%M:%S UTC")
    lines.append(f"Last Refresh: {last_str}")
    return lines


def generate_summary_image(countries: Sequence) -> Optional[str]:
    """
    Render the summary PNG for the given countries.

    Returns the file path, or None when there is nothing to summarize.
    An existing image is overwritten.
    """
    if not countries:
        return None

    os.makedirs(settings.IMAGE_CACHE_DIR, exist_ok=True)

    title, total, header, *rest = build_summary_lines(countries)
    ranked, footer = rest[:-1], rest[-1]

    title_font = _load_font("DejaVuSans-Bold.ttf", 28)
    header_font = _load_font("DejaVuSans.ttf", 20)
    body_font = _load_font("DejaVuSans.ttf", 18)
    footer_font = _load_font("DejaVuSans.ttf", 16)

    img = Image.new("RGB", (WIDTH, HEIGHT), color=BACKGROUND)
    draw = ImageDraw.Draw(img)

    draw.rectangle([0, 0, WIDTH, 90], fill="#111111")
    left, top, right, bottom = draw.textbbox((0, 0), title, font=title_font)
    draw.text(((WIDTH - (right - left)) // 2, (90 - (bottom - top)) // 2), title, fill=TITLE_COLOR, font=title_font)

    draw.text((60, 120), total, fill=TEXT_COLOR, font=header_font)
    draw.text((60, 170), header, fill=TEXT_COLOR, font=header_font)

    y_offset = 210
    for line in ranked:
        draw.text((80, y_offset), line, fill=TEXT_COLOR, font=body_font)
        y_offset += 40

    draw.text((60, 480), footer, fill=MUTED_COLOR, font=footer_font)

    path = settings.IMAGE_PATH
    img.save(path, format="PNG")
    logger.info("Summary image written to %s (%d countries)", path, len(countries))
    return path
