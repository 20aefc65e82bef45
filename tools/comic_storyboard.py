"""
Comic Panels - Storyboard Parser

Parses a Markdown storyboard into global settings and a list of panels.

A storyboard has:
- Global `key: value` settings before the first ```comic fence
- One ```comic [Title] fenced block per panel containing
  `key = value` overrides and `side_persona_expression: text` dialogue

Example:
    panelWidth: 1024
    fontSize: 34

    ```comic Briefing
    background = #fefefe
    left_guy_smile: Ready for the briefing?
    right_girl_angry: Only if you updated the sprites.
    ```
"""

import math
import re
from pathlib import Path

from comic_errors import AssetError, ConfigurationError, ParseError, StructuralError
from comic_sprites import build_sprite_catalog, resolve_sprite_token

DEFAULT_SETTINGS = {
    'panelWidth': 1024,
    'panelHeight': 768,
    'spriteScale': 0.85,
    'fontFamily': "'Space Mono', monospace",
    'fontSize': 34,
    'fontColor': '#111111',
    'fontPath': None,
    'background': '#ffffff',
    'margin': 48,
    'dialogueAreaHeight': 240,
    'outputExtension': 'svg',
    'spriteRoot': 'output',
}

FENCE_PATTERN = re.compile(r'```comic(?:[ \t]+([^\n`]*))?\r?\n(.*?)```', re.DOTALL)
GLOBAL_LINE_PATTERN = re.compile(r'^([A-Za-z][\w-]*):\s*(.+)$')
# A token needs at least one separator; "Note: ..." prose is not dialogue
DIALOGUE_PATTERN = re.compile(r'^([a-z0-9]+(?:[_-][a-z0-9]*)+)\s*:\s*(.*)$', re.IGNORECASE)
INLINE_COMMENT_PATTERN = re.compile(r'\s+#(\s.*)?$')
EXTENSION_PATTERN = re.compile(r'^[a-z0-9_-]+$', re.IGNORECASE)
INTEGER_PATTERN = re.compile(r'^\d+$')

TRUE_WORDS = ('true', '1', 'yes', 'y')
FALSE_WORDS = ('false', '0', 'no', 'n')

# Panel overrides that fall back to the global setting of the same name
OVERRIDE_FIELDS = (
    'background',
    'margin',
    'dialogueAreaHeight',
    'spriteScale',
    'fontSize',
    'fontFamily',
    'fontColor',
)


# === Value parsers ===

def strip_quotes(text):
    """Remove one pair of matching single or double quotes."""
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ('"', "'"):
        return text[1:-1]
    return text


def parse_positive_int(value, name, line, panel=None):
    # int() would also take "1_000" or "+5"
    digits = value.strip()
    number = int(digits) if INTEGER_PATTERN.match(digits) else 0
    if number <= 0:
        raise ParseError(f'Invalid {name} "{value}": expected a positive integer.', panel=panel, line=line)
    return number


def parse_positive_number(value, name, line, panel=None):
    try:
        number = float(value.strip())
    except ValueError:
        number = math.nan
    if not math.isfinite(number) or number <= 0:
        raise ParseError(f'Invalid {name} "{value}": expected a positive number.', panel=panel, line=line)
    return number


def parse_scale(value, name, line, panel=None):
    """Sprite scale in (0, 1]; sprites may shrink but never outgrow the sprite area."""
    number = parse_positive_number(value, name, line, panel)
    if number > 1:
        raise ParseError(f'Invalid {name} "{value}": expected a number in (0, 1].', panel=panel, line=line)
    return number


def parse_non_negative_number(value, name, line, panel=None):
    try:
        number = float(value.strip())
    except ValueError:
        number = math.nan
    if not math.isfinite(number) or number < 0:
        raise ParseError(f'Invalid {name} "{value}": expected a number >= 0.', panel=panel, line=line)
    return number


def parse_bool(value, name, line, panel=None):
    normalized = value.strip().lower()
    if normalized in TRUE_WORDS:
        return True
    if normalized in FALSE_WORDS:
        return False
    raise ParseError(f'Invalid {name} "{value}". Use true/false.', panel=panel, line=line)


def parse_text(value, name, line, panel=None):
    return value.strip()


def parse_quoted_text(value, name, line, panel=None):
    return strip_quotes(value)


def sanitize_extension(ext):
    """Validate the output extension; leading dots are dropped."""
    if not ext:
        return 'svg'
    candidate = str(ext).strip().lstrip('.').strip()
    if not candidate:
        return 'svg'
    if not EXTENSION_PATTERN.match(candidate):
        raise ConfigurationError(f"Invalid output extension: {ext}")
    return candidate


# === Global settings ===

GLOBAL_SETTINGS = {
    'panelwidth': ('panelWidth', parse_positive_int),
    'width': ('panelWidth', parse_positive_int),
    'panelheight': ('panelHeight', parse_positive_int),
    'height': ('panelHeight', parse_positive_int),
    'spritescale': ('spriteScale', parse_scale),
    'fontfamily': ('fontFamily', parse_text),
    'fontsize': ('fontSize', parse_positive_int),
    'fontcolor': ('fontColor', parse_text),
    'fontpath': ('fontPath', parse_text),
    'background': ('background', parse_text),
    'margin': ('margin', parse_non_negative_number),
    'dialogueareaheight': ('dialogueAreaHeight', parse_non_negative_number),
    'outputextension': ('outputExtension', parse_text),
    'spriteroot': ('spriteRoot', parse_text),
}


def global_setting_key(raw_key):
    """panelWidth, panel-width and PANEL_WIDTH all name the same setting."""
    return re.sub(r'[-_]', '', raw_key.lower())


def parse_preamble(preamble):
    """Read `key: value` settings; keys nobody knows about are ignored."""
    settings = dict(DEFAULT_SETTINGS)

    for index, raw_line in enumerate(preamble.splitlines()):
        match = GLOBAL_LINE_PATTERN.match(raw_line.strip())
        if not match:
            continue
        entry = GLOBAL_SETTINGS.get(global_setting_key(match.group(1)))
        if entry is None:
            continue
        field, parser = entry
        settings[field] = parser(match.group(2).strip(), field, index + 1)

    return settings


def resolve_settings(settings, base_dir):
    """Resolve paths against the storyboard folder and validate the extension."""
    resolved = dict(settings)
    base = Path(base_dir)
    resolved['spriteRoot'] = str((base / (settings['spriteRoot'] or 'output')).resolve())
    if settings['fontPath']:
        resolved['fontPath'] = str((base / settings['fontPath']).resolve())
    else:
        resolved['fontPath'] = None
    resolved['outputExtension'] = sanitize_extension(settings['outputExtension'])
    return resolved


# === Panels ===

PANEL_SETTINGS = {
    'title': ('title', parse_quoted_text),
    'flip-left': ('flipLeft', parse_bool),
    'flip left': ('flipLeft', parse_bool),
    'left flip': ('flipLeft', parse_bool),
    'left flipped': ('flipLeft', parse_bool),
    'flip-right': ('flipRight', parse_bool),
    'flip right': ('flipRight', parse_bool),
    'right flip': ('flipRight', parse_bool),
    'right flipped': ('flipRight', parse_bool),
    'background': ('background', parse_quoted_text),
    'background color': ('background', parse_quoted_text),
    'background colour': ('background', parse_quoted_text),
    'background-colour': ('background', parse_quoted_text),
    'margin': ('margin', parse_non_negative_number),
    'dialogueareaheight': ('dialogueAreaHeight', parse_non_negative_number),
    'dialogue area height': ('dialogueAreaHeight', parse_non_negative_number),
    'dialogue-area-height': ('dialogueAreaHeight', parse_non_negative_number),
    'dialogue area': ('dialogueAreaHeight', parse_non_negative_number),
    'dialogue-area': ('dialogueAreaHeight', parse_non_negative_number),
    'sprite-scale': ('spriteScale', parse_scale),
    'spritescale': ('spriteScale', parse_scale),
    'font-size': ('fontSize', parse_positive_int),
    'fontsize': ('fontSize', parse_positive_int),
    'font-family': ('fontFamily', parse_quoted_text),
    'fontfamily': ('fontFamily', parse_quoted_text),
    'font-color': ('fontColor', parse_quoted_text),
    'fontcolor': ('fontColor', parse_quoted_text),
    'font-colour': ('fontColor', parse_quoted_text),
    'fontcolour': ('fontColor', parse_quoted_text),
}


def panel_label(panel):
    """Quoted title when the panel has one, otherwise its 1-based index."""
    if panel['title']:
        return f'"{panel["title"]}"'
    return f"#{panel['index']}"


def new_panel(index, title):
    panel = {
        'index': index,
        'title': title,
        'left': {'sprite': None, 'flip': None},
        'right': {'sprite': None, 'flip': None},
        'dialogue': [],
    }
    for field in OVERRIDE_FIELDS:
        panel[field] = None
    return panel


def apply_panel_setting(panel, key, value, line):
    """Apply one `key = value` override line to the panel."""
    normalized_key = re.sub(r'\s+', ' ', key.strip().lower())
    entry = PANEL_SETTINGS.get(normalized_key)
    if entry is None:
        accepted = ', '.join(sorted(set(k for k in PANEL_SETTINGS if ' ' not in k)))
        raise ParseError(
            f'unknown panel setting "{key.strip()}". Accepted: {accepted}',
            panel=panel_label(panel), line=line,
        )

    field, parser = entry
    parsed = parser(value, normalized_key, line, panel=panel_label(panel))
    if field == 'flipLeft':
        panel['left']['flip'] = parsed
    elif field == 'flipRight':
        panel['right']['flip'] = parsed
    else:
        panel[field] = parsed


def validate_panel(panel):
    """A panel needs a sprite and a line of dialogue from both sides."""
    label = panel_label(panel)
    if not panel['left']['sprite']:
        raise StructuralError(
            'never references a left-side sprite. Use tokens like left_guy_smile: Hello.', panel=label
        )
    if not panel['right']['sprite']:
        raise StructuralError(
            'never references a right-side sprite. Use tokens like right_girl_angry: What?', panel=label
        )
    if not panel['dialogue']:
        raise StructuralError('is missing dialogue lines.', panel=label)

    speakers = set(line['speaker'] for line in panel['dialogue'])
    if speakers != {'left', 'right'}:
        raise StructuralError('must feature dialogue from both sides.', panel=label)


def parse_panel_block(body, title, index, catalog, first_line=1):
    """
    Parse the body of one ```comic block.

    `first_line` is the storyboard line number of the body's first line so
    errors point at the right place in the document.

    A side shows the sprite of the last dialogue line spoken from that side.
    """
    panel = new_panel(index, title)

    for offset, raw_line in enumerate(body.splitlines()):
        line = first_line + offset
        stripped = raw_line.strip()
        if not stripped or stripped.startswith('#') or stripped.startswith('//'):
            continue

        cleaned = INLINE_COMMENT_PATTERN.sub('', stripped)
        eq_index = cleaned.find('=')
        colon_index = cleaned.find(':')

        if eq_index != -1 and (colon_index == -1 or eq_index < colon_index):
            value = cleaned[eq_index + 1:].strip()
            if value:
                apply_panel_setting(panel, cleaned[:eq_index], value, line)
            continue

        match = DIALOGUE_PATTERN.match(cleaned)
        if not match:
            # Stray prose
            continue

        side, sprite_path = resolve_sprite_token(
            match.group(1), catalog, panel=panel_label(panel), line=line
        )
        panel[side]['sprite'] = sprite_path
        panel['dialogue'].append({'speaker': side, 'text': match.group(2).strip()})

    validate_panel(panel)
    return panel


# === Document ===

def parse_storyboard(content, base_dir='.', catalog=None):
    """
    Parse storyboard text into {'settings': ..., 'catalog': ..., 'panels': [...]}.

    The sprite catalogue is built from the spriteRoot setting unless one is
    passed in.
    """
    first_fence = FENCE_PATTERN.search(content)
    preamble = content[:first_fence.start()] if first_fence else content

    settings = resolve_settings(parse_preamble(preamble), base_dir)

    if not first_fence:
        raise StructuralError('Storyboard must include at least one ```comic``` fenced code block.')

    if catalog is None:
        catalog = build_sprite_catalog(settings['spriteRoot'])

    panels = []
    for match in FENCE_PATTERN.finditer(content):
        title = (match.group(1) or '').strip()
        first_line = content.count('\n', 0, match.start(2)) + 1
        panels.append(parse_panel_block(match.group(2), title, len(panels) + 1, catalog, first_line))

    if not panels:
        raise StructuralError(
            'No panels could be parsed from the storyboard. '
            'Ensure each ```comic``` block defines both left/right sprites and dialogue.'
        )

    return {
        'settings': settings,
        'catalog': catalog,
        'panels': panels,
    }


def load_storyboard(filepath, catalog=None):
    """Read and parse a storyboard file."""
    filepath = Path(filepath)
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise AssetError(f"Cannot read storyboard {filepath}: {e}", path=str(filepath)) from e
    return parse_storyboard(content, filepath.parent, catalog)
