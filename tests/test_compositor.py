from __future__ import annotations

import io

import pytest
from PIL import Image

from gradient_mint.errors import RenderError
from gradient_mint.render.compositor import GradientCompositor
from gradient_mint.render.types import SourceImage
from gradient_mint.schema import GradientSpec

from conftest import make_png


def _decode(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


def _close(actual: tuple[int, ...], expected: tuple[int, ...], tol: int = 1) -> bool:
    return all(abs(a - e) <= tol for a, e in zip(actual, expected))


class TestGradientCompositor:
    def test_output_keeps_source_dimensions(self, source_image: SourceImage, gradient: GradientSpec) -> None:
        artifact = GradientCompositor().render(source_image, gradient)

        img = _decode(artifact.data)
        assert img.format == "PNG"
        assert img.size == (8, 6)
        assert (artifact.width, artifact.height) == (8, 6)
        assert artifact.mime_type == "image/png"
        assert artifact.filename == "gradient-nft.png"
        assert artifact.gradient == gradient
        assert artifact.size == len(artifact.data) > 0

    def test_render_is_deterministic(self, source_image: SourceImage, gradient: GradientSpec) -> None:
        compositor = GradientCompositor()
        first = compositor.render(source_image, gradient)
        second = compositor.render(source_image, gradient)

        assert first.data == second.data
        assert first.digest == second.digest

    def test_multiply_tint_at_forty_percent(self) -> None:
        source = SourceImage.from_bytes(make_png((4, 4), (255, 255, 255, 255)))
        red = GradientSpec.model_validate(["#ff0000", "#ff0000"])

        img = _decode(GradientCompositor().render(source, red).data).convert("RGBA")

        # white * red = red; 60% white + 40% red
        assert _close(img.getpixel((0, 0)), (255, 153, 153, 255))
        assert _close(img.getpixel((3, 3)), (255, 153, 153, 255))

    def test_gradient_runs_from_top_left_to_bottom_right(self) -> None:
        source = SourceImage.from_bytes(make_png((32, 32), (255, 255, 255, 255)))
        dark_to_light = GradientSpec.model_validate(["#000000", "#ffffff"])

        img = _decode(GradientCompositor().render(source, dark_to_light).data).convert("RGB")

        top_left = img.getpixel((0, 0))
        middle = img.getpixel((16, 16))
        bottom_right = img.getpixel((31, 31))
        assert top_left[0] < middle[0] < bottom_right[0]

    def test_transparent_pixels_take_gradient_color(self) -> None:
        source = SourceImage.from_bytes(make_png((4, 4), (0, 0, 0, 0)))
        red = GradientSpec.model_validate(["#ff0000", "#ff0000"])

        img = _decode(GradientCompositor().render(source, red).data).convert("RGBA")

        assert _close(img.getpixel((1, 1)), (255, 0, 0, 102))

    def test_half_transparent_pixels_follow_source_over(self) -> None:
        # black at alpha 128 under a red tint layer at 40%:
        # alpha = 128 + 0.4 * 127 ~ 179, red = 0.4 * (1 - a) * 255 / alpha ~ 72
        source = SourceImage.from_bytes(make_png((4, 4), (0, 0, 0, 128)))
        red = GradientSpec.model_validate(["#ff0000", "#ff0000"])

        img = _decode(GradientCompositor().render(source, red).data).convert("RGBA")

        assert _close(img.getpixel((1, 1)), (72, 0, 0, 179))

    def test_opacity_zero_leaves_source_unchanged(self) -> None:
        source = SourceImage.from_bytes(make_png((4, 4), (200, 100, 50, 255)))
        spec = GradientSpec.model_validate(["#00ff00", "#0000ff"])

        img = _decode(GradientCompositor(opacity=0.0).render(source, spec).data).convert("RGBA")

        assert img.getpixel((2, 2)) == (200, 100, 50, 255)

    def test_invalid_opacity_rejected(self) -> None:
        with pytest.raises(ValueError):
            GradientCompositor(opacity=1.5)

    def test_undecodable_source_raises_render_error(self, gradient: GradientSpec) -> None:
        source = SourceImage(data=b"not an image", width=1, height=1, mime_type="image/png")

        with pytest.raises(RenderError) as exc_info:
            GradientCompositor().render(source, gradient)
        assert "decode" in str(exc_info.value).lower()


class TestSourceImage:
    def test_from_bytes_reads_dimensions_and_mime(self, png_bytes: bytes) -> None:
        source = SourceImage.from_bytes(png_bytes, filename="photo.png")

        assert (source.width, source.height) == (8, 6)
        assert source.mime_type == "image/png"
        assert source.size.width == 8

    def test_from_bytes_rejects_garbage(self) -> None:
        with pytest.raises(RenderError):
            SourceImage.from_bytes(b"\x00\x01garbage")

    def test_from_path_missing_file(self, tmp_path) -> None:
        with pytest.raises(RenderError):
            SourceImage.from_path(tmp_path / "missing.png")


class TestRenderedArtifact:
    def test_describe_carries_artifact_facts(self, artifact) -> None:
        descriptor = artifact.describe("Sunset", "Warm tint")

        assert descriptor.name == "Sunset"
        assert descriptor.size == artifact.size
        assert descriptor.image_size.width == artifact.width
        assert descriptor.gradient == artifact.gradient

    def test_save_writes_bytes(self, artifact, tmp_path) -> None:
        out = artifact.save(tmp_path / "out" / "nft.png")

        assert out.read_bytes() == artifact.data
