"""QR symbol rendering and export using :mod:`segno`."""
from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, Tuple

from .config import AppConfig, StyleConfig
from .decode import FrameDecodeAdapter
from .errors import RendererUnavailable
from .readiness import effective_error_correction, resolve_background

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("svg", "png", "jpeg")


class SymbolRenderer(Protocol):
    def to_png_bytes(self, style: StyleConfig, size_px: Optional[int] = None) -> bytes:
        ...

    def export(self, style: StyleConfig, kind: str, name: Optional[str] = None, directory: str | Path = ".") -> Path:
        ...


def _require_segno():
    try:
        import segno  # type: ignore
    except Exception as exc:  # pragma: no cover - depends on environment
        raise RendererUnavailable("QR generation requires segno; install segno") from exc
    return segno


def _require_pillow():
    try:
        from PIL import Image  # type: ignore
    except Exception as exc:  # pragma: no cover - depends on environment
        raise RendererUnavailable("Raster export requires Pillow") from exc
    return Image


@dataclass(slots=True)
class SegnoRenderer:
    """Render a :class:`StyleConfig` with segno.

    segno draws square modules only, so the dot and corner shapes of the
    style are not reflected in the output.
    """

    config: AppConfig = field(default_factory=AppConfig)
    border: int = 4

    def make(self, style: StyleConfig):
        segno = _require_segno()
        return segno.make_qr(style.data, error=effective_error_correction(style), boost_error=False)

    def _colors(self, style: StyleConfig) -> Tuple[str, Optional[str]]:
        light = None if style.has_transparent_background else style.bg_color
        return style.fg_color, light

    def _scale_for(self, qr, size_px: int) -> int:
        width, _height = qr.symbol_size(scale=1, border=self.border)
        return max(1, size_px // width)

    def to_png_bytes(self, style: StyleConfig, size_px: Optional[int] = None) -> bytes:
        """Return a PNG of ``style`` roughly ``size_px`` wide, logo included."""

        qr = self.make(style)
        dark, light = self._colors(style)
        scale = self._scale_for(qr, size_px or self.config.preview_size)

        buffer = io.BytesIO()
        qr.save(buffer, kind="png", scale=scale, border=self.border, dark=dark, light=light)
        data = buffer.getvalue()
        if style.logo_path:
            data = self._composite_logo(data, style.logo_path)
        return data

    def _composite_logo(self, png: bytes, logo_path: str) -> bytes:
        Image = _require_pillow()

        with Image.open(io.BytesIO(png)) as base:
            symbol = base.convert("RGBA")
        with Image.open(logo_path) as source:
            logo = source.convert("RGBA")

        target = int(symbol.width * self.config.logo_size_ratio)
        logo.thumbnail((target, target))
        offset = ((symbol.width - logo.width) // 2, (symbol.height - logo.height) // 2)
        symbol.alpha_composite(logo, dest=offset)

        output = io.BytesIO()
        symbol.save(output, format="PNG")
        return output.getvalue()

    def _svg_with_logo(self, svg: str, logo_path: str, size: Tuple[int, int]) -> str:
        encoded = base64.b64encode(Path(logo_path).read_bytes()).decode("ascii")
        width, height = size
        logo_size = width * self.config.logo_size_ratio
        x = (width - logo_size) / 2
        y = (height - logo_size) / 2
        element = (
            f'<image x="{x:g}" y="{y:g}" width="{logo_size:g}" height="{logo_size:g}" '
            f'href="data:image/png;base64,{encoded}"/>'
        )
        return svg.replace("</svg>", f"{element}</svg>")

    def export(
        self,
        style: StyleConfig,
        kind: str,
        name: Optional[str] = None,
        directory: str | Path = ".",
        size_px: Optional[int] = None,
    ) -> Path:
        """Write ``style`` to ``directory`` as ``svg``, ``png`` or ``jpeg``.

        ``name`` is a file-name hint without extension.  JPEG has no alpha
        channel, so a transparent background is flattened onto the dark
        substrate color.
        """

        kind = kind.lower()
        if kind not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {kind}")

        extension = "jpg" if kind == "jpeg" else kind
        path = Path(directory) / f"{name or self.config.export_name}.{extension}"

        if kind == "svg":
            qr = self.make(style)
            dark, light = self._colors(style)
            scale = self._scale_for(qr, size_px or self.config.preview_size)
            buffer = io.BytesIO()
            qr.save(buffer, kind="svg", scale=scale, border=self.border, dark=dark, light=light)
            svg = buffer.getvalue().decode("utf-8")
            if style.logo_path:
                svg = self._svg_with_logo(svg, style.logo_path, qr.symbol_size(scale=scale, border=self.border))
            path.write_text(svg, encoding="utf-8")
        elif kind == "png":
            path.write_bytes(self.to_png_bytes(style, size_px))
        else:
            path.write_bytes(self._to_jpeg_bytes(style, size_px))

        logger.info("Exported %s to %s", kind, path)
        return path

    def _to_jpeg_bytes(self, style: StyleConfig, size_px: Optional[int]) -> bytes:
        Image = _require_pillow()
        from PIL import ImageColor  # type: ignore

        with Image.open(io.BytesIO(self.to_png_bytes(style, size_px))) as source:
            image = source.convert("RGBA")

        substrate = ImageColor.getrgb(resolve_background(style.bg_color, self.config))
        flattened = Image.new("RGB", image.size, substrate)
        flattened.paste(image, mask=image.getchannel("A"))

        output = io.BytesIO()
        flattened.save(output, format="JPEG", quality=95)
        return output.getvalue()

    def self_check(self, style: StyleConfig, decoder: FrameDecodeAdapter) -> bool:
        """Decode a rendered raster and confirm it carries ``style.data``.

        A transparent background is checked against the dark substrate it is
        expected to appear on.
        """

        image = self._to_jpeg_bytes(style, self.config.min_export_px * 2)
        result = decoder.decode_encoded_image(image)
        return result is not None and result.payload == style.data.strip()


__all__ = ["EXPORT_FORMATS", "SymbolRenderer", "SegnoRenderer"]
