"""
Comic Panels - Layout

Pure geometry: given a parsed panel, the effective settings and the pixel
size of both sprites, work out where the sprites and the dialogue go.
Nothing here touches the filesystem, so identical input always gives
identical geometry.
"""

import math

from comic_errors import ConfigurationError
from comic_storyboard import OVERRIDE_FIELDS, panel_label

CORNER_RADIUS = 24
TEXT_WIDTH_RATIO = 0.38
CHAR_WIDTH_RATIO = 0.6
LINE_HEIGHT_RATIO = 1.35
CSS_LINE_HEIGHT_RATIO = 1.3
BLOCK_GAP_RATIO = 0.8
MIN_CHARS_PER_LINE = 12


def round_half_up(value):
    return int(math.floor(value + 0.5))


def effective_settings(settings, panel):
    """Panel overrides win over the global settings."""
    effective = {
        'panelWidth': settings['panelWidth'],
        'panelHeight': settings['panelHeight'],
    }
    for field in OVERRIDE_FIELDS:
        override = panel.get(field)
        effective[field] = override if override is not None else settings[field]
    return effective


def max_chars_per_line(panel_width, font_size):
    """How many characters fit in one dialogue line, using an average glyph width."""
    max_text_width = panel_width * TEXT_WIDTH_RATIO
    char_width = font_size * CHAR_WIDTH_RATIO
    return max(MIN_CHARS_PER_LINE, int(math.floor(max_text_width / char_width)))


def wrap_text(text, max_chars):
    """
    Greedy word wrap.

    Words are never split; a word longer than max_chars gets a line of its
    own. Empty text still produces one (empty) line.
    """
    words = text.split()
    if not words:
        return ['']

    lines = []
    current = words[0]
    for word in words[1:]:
        if len(current) + 1 + len(word) <= max_chars:
            current += ' ' + word
        else:
            lines.append(current)
            current = word
    lines.append(current)
    return lines


def scale_sprite(size, sprite_scale, sprite_area_height):
    """Scale a sprite so it never gets taller than the sprite area."""
    width, height = size
    scale = sprite_scale * min(1, sprite_area_height / height)
    return width * scale, height * scale


def layout_dialogue(dialogue, panel_width, margin, font_size):
    """Stack dialogue blocks top to bottom, left speakers left, right speakers right."""
    max_chars = max_chars_per_line(panel_width, font_size)
    line_height = font_size * LINE_HEIGHT_RATIO

    blocks = []
    y = margin + font_size
    for entry in dialogue:
        lines = wrap_text(entry['text'] or '', max_chars)
        if entry['speaker'] == 'left':
            x, anchor = margin, 'start'
        else:
            x, anchor = panel_width - margin, 'end'

        blocks.append({
            'speaker': entry['speaker'],
            'x': x,
            'y': y,
            'anchor': anchor,
            'lines': lines,
            'lineHeight': line_height,
        })
        y += len(lines) * line_height + font_size * BLOCK_GAP_RATIO

    return blocks


def compute_panel_layout(panel, settings, sprite_sizes):
    """
    Compute the full geometry of one panel.

    `sprite_sizes` maps 'left' and 'right' to the (width, height) of the
    source images in pixels.
    """
    effective = effective_settings(settings, panel)
    width = effective['panelWidth']
    height = effective['panelHeight']
    margin = effective['margin']
    font_size = effective['fontSize']

    sprite_area_height = height - effective['dialogueAreaHeight']
    if sprite_area_height <= 0:
        raise ConfigurationError(
            f"dialogueAreaHeight {effective['dialogueAreaHeight']:g} leaves no room for sprites "
            f"in a {height}px tall panel.",
            panel=panel_label(panel),
        )

    left_width, left_height = scale_sprite(sprite_sizes['left'], effective['spriteScale'], sprite_area_height)
    right_width, right_height = scale_sprite(sprite_sizes['right'], effective['spriteScale'], sprite_area_height)

    # Both characters stand on the same ground line
    base_y = height - margin - max(left_height, right_height)

    left_flip = panel['left']['flip']
    right_flip = panel['right']['flip']

    sprites = {
        'left': {
            'path': panel['left']['sprite'],
            'x': margin,
            'y': base_y,
            'width': left_width,
            'height': left_height,
            'flip': bool(left_flip),
        },
        'right': {
            'path': panel['right']['sprite'],
            'x': width - margin - right_width,
            'y': base_y,
            'width': right_width,
            'height': right_height,
            'flip': True if right_flip is None else right_flip,
        },
    }

    return {
        'width': width,
        'height': height,
        'background': effective['background'],
        'cornerRadius': CORNER_RADIUS,
        'font': {
            'family': effective['fontFamily'],
            'size': font_size,
            'color': effective['fontColor'],
            'cssLineHeight': round_half_up(font_size * CSS_LINE_HEIGHT_RATIO),
        },
        'sprites': sprites,
        'dialogue': layout_dialogue(panel['dialogue'], width, margin, font_size),
    }
