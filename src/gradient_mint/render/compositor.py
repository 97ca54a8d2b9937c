from __future__ import annotations

import io
import logging

from PIL import Image, ImageChops, UnidentifiedImageError

from ..errors import RenderError
from ..schema import GradientSpec
from .types import RenderedArtifact, SourceImage

logger = logging.getLogger(__name__)

DEFAULT_OPACITY = 0.4


class GradientCompositor:
    """Tints a source bitmap with a diagonal two-color gradient.

    The gradient runs from the top-left corner (start color) to the
    bottom-right corner (end color) and is blended with ``multiply`` at
    ``opacity`` so the luminance detail of the photo survives the tint.
    Each call allocates its own surface; nothing is kept between calls.
    """

    def __init__(self, opacity: float = DEFAULT_OPACITY):
        if not 0.0 <= opacity <= 1.0:
            raise ValueError(f"opacity must be within [0, 1], got {opacity}")
        self.opacity = opacity

    def render(self, source: SourceImage, gradient: GradientSpec) -> RenderedArtifact:
        base = self._decode(source)
        w, h = base.size

        ramp = self._diagonal_ramp(w, h, gradient)
        rgb = base.convert("RGB")
        tinted = ImageChops.multiply(rgb, ramp)
        mixed = Image.blend(rgb, tinted, self.opacity)

        alpha = base.getchannel("A")
        opacity = self.opacity
        # source-over of the tint layer: the photo's share of the output
        # color is a / (a + opacity * (255 - a)), the rest is the bare ramp
        weight = alpha.point(lambda a: round(255 * a / (a + opacity * (255 - a))) if a else 0)
        canvas = Image.composite(mixed, ramp, weight)
        canvas.putalpha(alpha.point(lambda a: a + round(opacity * (255 - a))))

        buf = io.BytesIO()
        canvas.save(buf, format="PNG")
        data = buf.getvalue()
        logger.debug(f"Rendered {source.filename} ({w}x{h}) with {gradient.start} -> {gradient.end}")

        return RenderedArtifact(data=data, width=w, height=h, gradient=gradient)

    def _decode(self, source: SourceImage) -> Image.Image:
        try:
            with Image.open(io.BytesIO(source.data)) as img:
                return img.convert("RGBA")
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise RenderError(f"Could not decode source image {source.filename}: {e}") from e

    def _diagonal_ramp(self, w: int, h: int, gradient: GradientSpec) -> Image.Image:
        # t(x, y) = ((x, y) . (w, h)) / |(w, h)|^2 sampled at pixel centers;
        # it separates into a column term plus a row term.
        denom = w * w + h * h
        row = Image.new("L", (w, 1))
        row.putdata([round(255 * (x + 0.5) * w / denom) for x in range(w)])
        col = Image.new("L", (1, h))
        col.putdata([round(255 * (y + 0.5) * h / denom) for y in range(h)])
        mask = ImageChops.add(
            row.resize((w, h), Image.Resampling.NEAREST),
            col.resize((w, h), Image.Resampling.NEAREST),
        )

        start_rgb, end_rgb = gradient.rgb()
        start = Image.new("RGB", (w, h), start_rgb)
        end = Image.new("RGB", (w, h), end_rgb)
        return Image.composite(end, start, mask)
