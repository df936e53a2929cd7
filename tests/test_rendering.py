"""Tests for scenes, the SVG writer, the rasterizer and the painters."""

from __future__ import annotations

from datetime import date

import pytest

from intmap.layouts.flow import FlowLayoutAdapter
from intmap.layouts.force import ForceLayoutAdapter, ForceParams
from intmap.layouts.matrix import MatrixLayoutAdapter
from intmap.layouts.transition import TransitionLayoutAdapter
from intmap.rendering import (
    HEADER_HEIGHT,
    CaptureSurface,
    RasterSurface,
    RenderOptions,
    Scene,
    Transform,
    VectorSurface,
    paint_flow,
    paint_matrix,
    paint_network,
    paint_placeholder,
    paint_transition,
    rasterize,
    render_svg,
)
from intmap.rendering.painters import band, format_generated
from intmap.rendering.raster import flatten_segments
from intmap.rendering.scene import Circle, Path, Rect, Text
from intmap.topology.demo import example_topology


def _sample_scene(**kwargs) -> Scene:
    defaults = dict(
        width=200,
        height=100,
        content=(Rect(10, 10, 50, 20, fill="#10b981", title="A & B"),),
        overlay=(Text(5, 95, "legend <1>", size=10),),
    )
    defaults.update(kwargs)
    return Scene(**defaults)


# ===========================================================================
# Scene and SVG
# ===========================================================================


class TestTransform:
    def test_zoom_about_centre_keeps_centre_fixed(self):
        t = Transform.zoom_about(2.0, (100.0, 50.0))
        assert t.apply(100.0, 50.0) == pytest.approx((100.0, 50.0))

    def test_invert(self):
        t = Transform.zoom_about(1.5, (400.0, 300.0), pan=(10.0, -20.0), offset=(0.0, 110.0))
        assert t.invert(*t.apply(12.0, 34.0)) == pytest.approx((12.0, 34.0))

    def test_identity(self):
        assert Transform().is_identity
        assert not Transform(k=2.0).is_identity


class TestRenderSvg:
    def test_document_structure(self):
        markup = render_svg(_sample_scene())
        assert markup.startswith('<svg xmlns="http://www.w3.org/2000/svg" width="200"')
        assert 'viewBox="0 0 200 100"' in markup
        assert markup.endswith("</svg>")
        assert '<g class="content" transform="matrix(1 0 0 1 0 0)">' in markup
        assert '<g class="overlay">' in markup

    def test_titles_and_text_are_escaped(self):
        markup = render_svg(_sample_scene())
        assert "<title>A &amp; B</title>" in markup
        assert "legend &lt;1&gt;" in markup

    def test_transform_is_written(self):
        scene = _sample_scene(transform=Transform(k=2.0, tx=-100.0, ty=12.5))
        assert 'transform="matrix(2 0 0 2 -100 12.5)"' in render_svg(scene)

    def test_no_overlay_group_when_empty(self):
        assert 'class="overlay"' not in render_svg(_sample_scene(overlay=()))


# ===========================================================================
# Rasterizer
# ===========================================================================


class TestFlattenSegments:
    def test_line(self):
        polylines = flatten_segments((("M", (0.0, 0.0)), ("L", (10.0, 0.0))))
        assert polylines == [[(0.0, 0.0), (10.0, 0.0)]]

    def test_quadratic_ends_on_endpoint(self):
        polylines = flatten_segments((("M", (0.0, 0.0)), ("Q", (5.0, 10.0, 10.0, 0.0))), steps=9)
        points = polylines[0]
        assert len(points) == 9
        assert points[-1] == pytest.approx((10.0, 0.0))
        assert max(y for _, y in points) == pytest.approx(5.0)

    def test_move_starts_new_polyline(self):
        segments = (
            ("M", (0.0, 0.0)),
            ("L", (1.0, 1.0)),
            ("M", (5.0, 5.0)),
            ("L", (6.0, 6.0)),
        )
        assert len(flatten_segments(segments)) == 2

    def test_unknown_command(self):
        with pytest.raises(ValueError):
            flatten_segments((("M", (0.0, 0.0)), ("Z", ())))


class TestRasterize:
    def test_size_follows_scale(self):
        assert rasterize(_sample_scene()).size == (200, 100)
        assert rasterize(_sample_scene(), 2).size == (400, 200)
        assert rasterize(_sample_scene(), 1.5).size == (300, 150)

    def test_fill_lands_in_place(self):
        scene = _sample_scene(content=(Rect(0, 0, 100, 100, fill="#ff0000"),), overlay=())
        image = rasterize(scene)
        assert image.mode == "RGB"
        assert image.getpixel((50, 50)) == (255, 0, 0)
        assert image.getpixel((150, 50)) == (255, 255, 255)

    def test_content_follows_transform(self):
        scene = _sample_scene(
            content=(Rect(0, 0, 10, 10, fill="#0000ff"),),
            overlay=(),
            transform=Transform(k=1.0, tx=100.0, ty=0.0),
        )
        image = rasterize(scene)
        assert image.getpixel((105, 5)) == (0, 0, 255)
        assert image.getpixel((5, 5)) == (255, 255, 255)

    def test_all_primitives_draw(self):
        curve = (("M", (0.0, 0.0)), ("C", (10.0, 50.0, 90.0, 50.0, 100.0, 0.0)))
        scene = _sample_scene(
            content=(
                Circle(50, 50, 20, fill="#3b82f6", stroke="#1e40af"),
                Path(curve, stroke="red"),
                Text(100, 50, "↔", size=14, rotate=-45),
            )
        )
        assert rasterize(scene, 2).size == (400, 200)


# ===========================================================================
# Painters
# ===========================================================================


class TestPainters:
    def test_header_adds_fixed_height(self):
        options = RenderOptions(export_labels=True, title="Map", generated_on=date(2026, 3, 14))
        geometry = MatrixLayoutAdapter().compute(example_topology())
        surface = paint_matrix(geometry, options)
        assert surface.height == 600 + HEADER_HEIGHT
        markup = surface.to_vector_markup()
        assert "Generated on: March 14, 2026" in markup
        assert "Source Systems →" in markup

    def test_no_header_by_default(self):
        geometry = MatrixLayoutAdapter().compute(example_topology())
        surface = paint_matrix(geometry, RenderOptions())
        assert surface.height == 600
        assert "Generated on" not in surface.to_vector_markup()

    def test_legend_toggle(self):
        geometry = MatrixLayoutAdapter().compute(example_topology())
        with_legend = paint_matrix(geometry, RenderOptions()).to_vector_markup()
        without = paint_matrix(geometry, RenderOptions(show_legend=False)).to_vector_markup()
        assert "Legend:" in with_legend
        assert "Legend:" not in without

    def test_network_surface(self):
        geometry = ForceLayoutAdapter(ForceParams(max_iterations=50)).compute(example_topology())
        surface = paint_network(geometry, RenderOptions(zoom=1.5))
        assert isinstance(surface, CaptureSurface)
        assert surface.scene.transform.k == 1.5
        assert "Automatic Data Flow" in surface.to_vector_markup()

    def test_flow_surface(self):
        geometry = FlowLayoutAdapter().compute(example_topology())
        surface = paint_flow(geometry, RenderOptions())
        markup = surface.to_vector_markup()
        assert markup.count("<path") == len(geometry.links)

    def test_transition_is_pixels_only(self):
        geometry = TransitionLayoutAdapter().compute(example_topology())
        surface = paint_transition(geometry, RenderOptions(export_labels=True, title="Map"))
        assert isinstance(surface, RasterSurface)
        assert surface.to_vector_markup() is None
        assert surface.to_pixels(1).size == (800, 600 + HEADER_HEIGHT)

    def test_transition_pixels_are_exact_at_scale(self):
        geometry = TransitionLayoutAdapter().compute(example_topology())
        surface = paint_transition(geometry, RenderOptions(width=400, height=300, zoom=2.0))
        assert surface.to_pixels(2).size == (800, 600)

    def test_placeholder(self):
        surface = paint_placeholder("No connections to display", RenderOptions())
        assert isinstance(surface, VectorSurface)
        assert "No connections to display" in surface.to_vector_markup()
        assert surface.to_pixels().size == (800, 600)


class TestHelpers:
    def test_band(self):
        step, width = band(100.0, 1)
        assert width == pytest.approx(100.0)
        step, width = band(290.0, 3)
        assert step * 2 + width == pytest.approx(290.0)

    def test_format_generated(self):
        assert format_generated(date(2026, 1, 5)) == "Generated on: January 5, 2026"
