"""
Comic Panels - SVG Output

Turns panel geometry into a self-contained SVG: sprites and the optional
font are embedded as base64 data URIs so the file renders anywhere.
"""

import base64
import html
import io
import struct
from pathlib import Path

from fontTools.ttLib import TTFont, TTLibError

from comic_errors import AssetError, ConfigurationError

SVG_NAMESPACE = 'http://www.w3.org/2000/svg'
FALLBACK_FONT_FAMILY = 'Comic Panel'

FONT_FORMATS = {
    'truetype': 'font/ttf',
    'opentype': 'font/otf',
    'woff': 'font/woff',
    'woff2': 'font/woff2',
}


def format_number(value):
    """Integers print bare, everything else with at most 4 decimals."""
    if value == int(value):
        return str(int(value))
    return f"{value:.4f}".rstrip('0').rstrip('.')


def escape_xml(text):
    """Escape text for XML content and attribute values."""
    return html.escape(str(text))


def escape_style(text):
    """Escape text placed inside a <style> element; CSS quotes stay readable."""
    return html.escape(str(text), quote=False)


# === Fonts ===

def describe_font(data):
    """Return (family name, css format) for font bytes, using fontTools."""
    try:
        font = TTFont(io.BytesIO(data), lazy=True)
    except TTLibError as e:
        print(f"  Warning: Could not read font tables ({e}), embedding as TrueType")
        return FALLBACK_FONT_FAMILY, 'truetype'

    try:
        family = None
        if 'name' in font:
            family = font['name'].getDebugName(1)
        if font.flavor in ('woff', 'woff2'):
            font_format = font.flavor
        elif font.sfntVersion == 'OTTO':
            font_format = 'opentype'
        else:
            font_format = 'truetype'
    except (TTLibError, struct.error) as e:
        print(f"  Warning: Could not read font name table ({e})")
        family, font_format = None, 'truetype'
    finally:
        font.close()

    family = ''.join(c for c in (family or '') if c not in '\'"\\<>&;{}').strip()
    return family or FALLBACK_FONT_FAMILY, font_format


def load_font_face(font_path):
    """Read a font file for embedding as an @font-face rule."""
    path = Path(font_path)
    if not path.is_file():
        raise ConfigurationError(f"Font file not found: {font_path}", path=str(font_path))
    try:
        data = path.read_bytes()
    except OSError as e:
        raise AssetError(f"Cannot read font {font_path}: {e.strerror}", path=str(font_path)) from e

    family, font_format = describe_font(data)
    return {
        'family': f"{family} Embedded",
        'format': font_format,
        'mime': FONT_FORMATS[font_format],
        'encoded': base64.b64encode(data).decode('ascii'),
    }


def render_font_face(font_face):
    return (
        f"<style>@font-face {{ font-family: '{font_face['family']}'; "
        f"src: url(data:{font_face['mime']};base64,{font_face['encoded']}) format('{font_face['format']}'); "
        f"font-weight: normal; font-style: normal; }}</style>"
    )


# === Elements ===

def render_sprite(sprite, encoded):
    """Image element; mirrored sprites flip around their own right edge."""
    width = format_number(sprite['width'])
    height = format_number(sprite['height'])
    y = format_number(sprite['y'])
    href = f"data:image/png;base64,{encoded}"
    if sprite['flip']:
        tx = format_number(sprite['x'] + sprite['width'])
        return (
            f'<image x="0" y="{y}" width="{width}" height="{height}" '
            f'transform="translate({tx} 0) scale(-1 1)" href="{href}" />'
        )
    x = format_number(sprite['x'])
    return f'<image x="{x}" y="{y}" width="{width}" height="{height}" href="{href}" />'


def render_dialogue(block):
    """One <text> per dialogue line, one <tspan> per wrapped line."""
    x = format_number(block['x'])
    tspans = []
    for index, segment in enumerate(block['lines']):
        dy = format_number(block['lineHeight']) if index else '0'
        tspans.append(f'<tspan x="{x}" dy="{dy}">{escape_xml(segment)}</tspan>')
    return (
        f'<text class="dialogue" x="{x}" y="{format_number(block["y"])}" '
        f'text-anchor="{block["anchor"]}">{"".join(tspans)}</text>'
    )


def build_panel_svg(layout, sprite_data, font_face=None):
    """
    Serialize panel geometry to SVG markup.

    `sprite_data` maps 'left'/'right' to base64 PNG data; `font_face` is
    the result of load_font_face() or None.
    """
    width = format_number(layout['width'])
    height = format_number(layout['height'])
    font = layout['font']

    font_stack = font['family']
    if font_face:
        font_stack = f"'{font_face['family']}', {font_stack}"

    styles = ' '.join([
        f"text {{ font-family: {escape_style(font_stack)}; font-size: {format_number(font['size'])}px; "
        f"fill: {escape_style(font['color'])}; }}",
        f".dialogue {{ line-height: {font['cssLineHeight']}px; }}",
    ])

    parts = [f'<svg xmlns="{SVG_NAMESPACE}" width="{width}" height="{height}" viewBox="0 0 {width} {height}">']
    parts.append('<defs>')
    if font_face:
        parts.append(render_font_face(font_face))
    parts.append(f'<style>{styles}</style>')
    parts.append('</defs>')

    radius = layout['cornerRadius']
    parts.append(
        f'<rect width="{width}" height="{height}" fill="{escape_xml(layout["background"])}" '
        f'rx="{radius}" ry="{radius}" />'
    )

    for side in ('left', 'right'):
        parts.append(render_sprite(layout['sprites'][side], sprite_data[side]))

    for block in layout['dialogue']:
        parts.append(render_dialogue(block))

    parts.append('</svg>')
    return '\n'.join(parts)
