"""
Comic Panels - Sprites

Scans the sprite root for character art and maps dialogue tokens such as
``left_guy_smile`` to a side of the panel and a concrete sprite file.

Sprite root layout:
    <spriteRoot>/male/male_smile.png     -> male   / smile
    <spriteRoot>/female/angry.png        -> female / angry
"""

import base64
import os
import re
import struct
from pathlib import Path

from comic_errors import AssetError, ConfigurationError, ParseError

CATEGORIES = ('male', 'female')
SPRITE_EXTENSIONS = ('.png', '.webp')

PERSONA_LOOKUP = {
    'guy': 'male',
    'male': 'male',
    'man': 'male',
    'boy': 'male',
    'dude': 'male',
    'bro': 'male',
    'girl': 'female',
    'female': 'female',
    'woman': 'female',
    'lady': 'female',
    'gal': 'female',
}

SIDE_LOOKUP = {
    'left': 'left',
    'l': 'left',
    'right': 'right',
    'r': 'right',
}

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'


def normalize_key(value):
    """Lowercase and collapse every non-alphanumeric run into one underscore."""
    key = re.sub(r'[^a-z0-9]+', '_', value.lower())
    return key.strip('_')


def expression_from_filename(filename, category):
    """Derive the expression key for a sprite file inside a category folder."""
    stem = Path(filename).stem
    prefix = f"{category}_"
    if stem.lower().startswith(prefix):
        stem = stem[len(prefix):]
    return normalize_key(stem)


def build_sprite_catalog(root_dir):
    """Build {category: {expression: absolute path}} from the sprite root."""
    root = Path(root_dir).resolve()
    catalog = {category: {} for category in CATEGORIES}
    found_any = False

    for category in CATEGORIES:
        category_dir = root / category
        if not category_dir.is_dir():
            continue

        # Sorted so "first file wins" does not depend on directory order
        for entry in sorted(os.listdir(category_dir)):
            if Path(entry).suffix.lower() not in SPRITE_EXTENSIONS:
                continue
            key = expression_from_filename(entry, category)
            if not key or key in catalog[category]:
                continue
            catalog[category][key] = str(category_dir / entry)
            found_any = True

    if not found_any:
        raise ConfigurationError(
            f"No sprites discovered under {root}. "
            "Add PNGs inside male/ and female/ or set spriteRoot.",
            path=str(root),
        )

    return catalog


def list_expressions(catalog, persona):
    """Comma separated, sorted list of expressions available for a persona."""
    keys = sorted(catalog.get(persona, {}))
    return ', '.join(keys) if keys else 'none'


def select_sprite(catalog, persona, expression_key):
    """Exact lookup first, then a loose match that ignores underscores."""
    persona_catalog = catalog.get(persona, {})
    if expression_key in persona_catalog:
        return persona_catalog[expression_key]

    loose_key = expression_key.replace('_', '')
    for key, sprite_path in persona_catalog.items():
        if key.replace('_', '') == loose_key:
            return sprite_path

    return None


def split_token(token):
    """Split a dialogue token on underscores, hyphens and whitespace."""
    return [segment for segment in re.split(r'[_\s-]+', token.lower()) if segment]


def resolve_sprite_token(token, catalog, panel=None, line=None):
    """
    Resolve ``side_persona_expression`` to ``(side, sprite_path)``.

    Matching is case and separator insensitive, so ``LEFT_Guy_Smile`` and
    ``left-guy-smile`` resolve to the same sprite.
    """
    segments = split_token(token)
    if len(segments) < 3:
        raise ParseError(
            f'"{token}" is not a sprite token. Use tokens like left_guy_smile to pick a sprite.',
            panel=panel, line=line,
        )

    side_token, persona_token = segments[0], segments[1]
    side = SIDE_LOOKUP.get(side_token)
    if side is None:
        raise ParseError(
            f'unknown side "{side_token}". Use left_ or right_.',
            panel=panel, line=line,
        )

    persona = PERSONA_LOOKUP.get(persona_token)
    if persona is None:
        raise ParseError(
            f'unknown persona "{persona_token}". Choose from guy/girl (or male/female).',
            panel=panel, line=line,
        )

    expression_raw = '_'.join(segments[2:])
    sprite_path = select_sprite(catalog, persona, normalize_key(expression_raw))
    if sprite_path is None:
        raise ParseError(
            f'no sprite for {persona} expression "{expression_raw}". '
            f"Available: {list_expressions(catalog, persona)}",
            panel=panel, line=line,
        )

    return side, sprite_path


def read_png_meta(file_path):
    """Read a PNG sprite: pixel size from the IHDR chunk plus base64 data."""
    try:
        with open(file_path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise AssetError(f"Cannot read sprite {file_path}: {e.strerror}", path=str(file_path)) from e

    if len(data) < 24 or data[:8] != PNG_SIGNATURE:
        raise AssetError(f"Sprite is not a PNG file: {file_path}", path=str(file_path))

    width, height = struct.unpack('>II', data[16:24])
    if not width or not height:
        raise AssetError(f"Sprite has an empty IHDR size: {file_path}", path=str(file_path))

    return {
        'path': str(file_path),
        'width': width,
        'height': height,
        'encoded': base64.b64encode(data).decode('ascii'),
    }


def load_sprite(file_path, cache):
    """read_png_meta with a per-run cache so shared sprites are read once."""
    key = str(file_path)
    if key not in cache:
        cache[key] = read_png_meta(key)
    return cache[key]
