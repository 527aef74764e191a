import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from . import utils
from .models import Country

logger = logging.getLogger(__name__)

WIDTH, HEIGHT = 800, 600
PRIMARY = "#007bff"
MUTED = "#6c757d"
PANEL = "#e9ecef"
STRIPE = "#f8f9fa"
FONT_SIZES = {"title": 28, "big": 32, "label": 18, "body": 16}


@dataclass
class SummaryResult:
    ok: bool
    path: Optional[str] = None
    error: Optional[Exception] = None


def _load_fonts():
    try:
        return {
            key: ImageFont.truetype("DejaVuSans-Bold.ttf" if key != "body" else "DejaVuSans.ttf", size)
            for key, size in FONT_SIZES.items()
        }
    except OSError:
        return {key: ImageFont.load_default(size=size) for key, size in FONT_SIZES.items()}


class SummaryGenerator:
    """
    Renders the cached summary PNG: total count, the top countries by
    estimated value, and when it was generated.

    ``generate`` is best-effort: it never raises, and a failed run leaves
    the previous image where it was.
    """

    def __init__(self, config):
        self.config = config

    def image_path(self):
        return os.path.join(self.config.cache_dir, self.config.summary_filename)

    def generate(self):
        try:
            total = Country.objects.count()
            top = Country.objects.top_by_field("estimated_value", self.config.top_n)
            image = self.render(total, top, utils.get_now())
            path = self._write(image)
        except Exception as exc:
            logger.exception("Summary image generation failed")
            return SummaryResult(ok=False, error=exc)

        logger.info("Summary image written to %s", path)
        return SummaryResult(ok=True, path=path)

    def render(self, total_countries, top, timestamp):
        fonts = _load_fonts()
        img = Image.new("RGB", (WIDTH, HEIGHT), color=STRIPE)
        draw = ImageDraw.Draw(img)

        # Header
        draw.rectangle((0, 0, WIDTH, 80), fill=PRIMARY)
        draw.text((WIDTH // 2, 40), "Countries Summary", fill="white",
                  font=fonts["title"], anchor="mm")

        # Total count
        draw.rounded_rectangle((50, 110, 750, 200), radius=10, fill=PANEL)
        draw.text((WIDTH // 2, 135), "Total Countries in Database", fill="#333333",
                  font=fonts["label"], anchor="mm")
        draw.text((WIDTH // 2, 175), str(total_countries), fill=PRIMARY,
                  font=fonts["big"], anchor="mm")

        draw.text((50, 230), f"Top {self.config.top_n} Countries by Estimated Value "
                             f"({self.config.base_currency})",
                  fill="#333333", font=fonts["label"])

        y = 270
        if not top:
            draw.text((70, y), "No data available.", fill=MUTED, font=fonts["body"])
        for rank, country in enumerate(top, start=1):
            fill = STRIPE if rank % 2 else "white"
            draw.rounded_rectangle((50, y - 8, 750, y + 27), radius=5, fill=fill)
            draw.text((70, y), f"{rank}. {country.name}", fill="#333333", font=fonts["body"])
            value = utils.format_currency(country.estimated_value, self.config.base_currency)
            draw.text((730, y), value, fill="#28a745", font=fonts["body"], anchor="ra")
            y += 40

        # Footer
        draw.rectangle((0, 520, WIDTH, HEIGHT), fill=MUTED)
        draw.text((WIDTH // 2, 545), "Last Refreshed", fill="white",
                  font=fonts["body"], anchor="mm")
        draw.text((WIDTH // 2, 572), timestamp.strftime("%Y-%m-%d %H:%M:%S %Z"),
                  fill="white", font=fonts["label"], anchor="mm")
        return img

    def _write(self, image):
        os.makedirs(self.config.cache_dir, exist_ok=True)
        path = self.image_path()
        fd, tmp_path = tempfile.mkstemp(suffix=".png", dir=self.config.cache_dir)
        try:
            with os.fdopen(fd, "wb") as fh:
                image.save(fh, "PNG")
            os.replace(tmp_path, path)
        except Exception:
            os.unlink(tmp_path)
            raise
        return path
