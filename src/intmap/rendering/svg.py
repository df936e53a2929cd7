"""SVG serialization of a scene."""

from __future__ import annotations

from xml.sax.saxutils import escape, quoteattr

from intmap.rendering.scene import Circle, Line, Path, Polygon, Primitive, Rect, Scene, Text

SVG_NS = "http://www.w3.org/2000/svg"

_ANCHORS = {"start": "start", "middle": "middle", "end": "end"}


def _n(value: float) -> str:
    """Compact number: at most two decimals, no trailing zeros."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def _attrs(**attrs: object) -> str:
    parts = []
    for name, value in attrs.items():
        if value is None:
            continue
        if isinstance(value, float):
            value = _n(value)
        parts.append(f"{name.replace('_', '-')}={quoteattr(str(value))}")
    return " ".join(parts)


def _element(tag: str, attrs: str, title: str | None = None, body: str = "") -> str:
    inner = escape(body)
    if title:
        inner = f"<title>{escape(title)}</title>" + inner
    if not inner:
        return f"<{tag} {attrs}/>"
    return f"<{tag} {attrs}>{inner}</{tag}>"


def _rect(p: Rect) -> str:
    attrs = _attrs(
        x=float(p.x),
        y=float(p.y),
        width=float(max(p.width, 0.0)),
        height=float(max(p.height, 0.0)),
        rx=float(p.rx) if p.rx else None,
        fill=p.fill,
        stroke=p.stroke,
        stroke_width=float(p.stroke_width) if p.stroke else None,
        opacity=float(p.opacity) if p.opacity < 1 else None,
    )
    return _element("rect", attrs, p.title)


def _circle(p: Circle) -> str:
    attrs = _attrs(
        cx=float(p.cx),
        cy=float(p.cy),
        r=float(p.r),
        fill=p.fill,
        stroke=p.stroke,
        stroke_width=float(p.stroke_width) if p.stroke else None,
    )
    return _element("circle", attrs, p.title)


def _line(p: Line) -> str:
    attrs = _attrs(
        x1=float(p.x1),
        y1=float(p.y1),
        x2=float(p.x2),
        y2=float(p.y2),
        stroke=p.stroke,
        stroke_width=float(p.stroke_width),
    )
    return _element("line", attrs)


def path_data(segments) -> str:
    return " ".join(f"{cmd}{','.join(_n(v) for v in values)}" for cmd, values in segments)


def _path(p: Path) -> str:
    attrs = _attrs(
        d=path_data(p.segments),
        fill=p.fill,
        stroke=p.stroke,
        stroke_width=float(p.stroke_width) if p.stroke else None,
        opacity=float(p.opacity) if p.opacity < 1 else None,
    )
    return _element("path", attrs, p.title)


def _polygon(p: Polygon) -> str:
    points = " ".join(f"{_n(x)},{_n(y)}" for x, y in p.points)
    attrs = _attrs(points=points, fill=p.fill, stroke=p.stroke)
    return _element("polygon", attrs, p.title)


def _text(p: Text) -> str:
    attrs = _attrs(
        x=float(p.x),
        y=float(p.y),
        font_size=float(p.size),
        fill=p.fill,
        text_anchor=_ANCHORS.get(p.anchor, "start"),
        font_weight="bold" if p.weight == "bold" else None,
        dominant_baseline="middle" if p.baseline == "middle" else None,
        transform=f"rotate({_n(p.rotate)} {_n(p.x)} {_n(p.y)})" if p.rotate else None,
    )
    return _element("text", attrs, p.title, body=p.text)


_WRITERS = {
    Rect: _rect,
    Circle: _circle,
    Line: _line,
    Path: _path,
    Polygon: _polygon,
    Text: _text,
}


def element(primitive: Primitive) -> str:
    return _WRITERS[type(primitive)](primitive)


def render_svg(scene: Scene) -> str:
    """Serialize a scene as an SVG fragment (no XML declaration)."""
    t = scene.transform
    lines = [
        f'<svg xmlns="{SVG_NS}" width="{_n(scene.width)}" height="{_n(scene.height)}" '
        f'viewBox="0 0 {_n(scene.width)} {_n(scene.height)}" font-family="sans-serif">',
        f'<rect width="100%" height="100%" fill={quoteattr(scene.background)}/>',
        f'<g class="content" transform="matrix({_n(t.k)} 0 0 {_n(t.k)} {_n(t.tx)} {_n(t.ty)})">',
    ]
    lines.extend(element(p) for p in scene.content)
    lines.append("</g>")
    if scene.overlay:
        lines.append('<g class="overlay">')
        lines.extend(element(p) for p in scene.overlay)
        lines.append("</g>")
    lines.append("</svg>")
    return "\n".join(lines)
