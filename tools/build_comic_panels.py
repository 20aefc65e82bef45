#!/usr/bin/env python3
"""
Comic Panels - Panel Builder

Reads a Markdown storyboard and writes one SVG per ```comic block
(panel-01.svg, panel-02.svg, ...) into the output directory.

Usage:
    python tools/build_comic_panels.py <storyboard.md> [outputDir]

Sprites are looked up under <spriteRoot>/male and <spriteRoot>/female
(spriteRoot defaults to "output" next to the storyboard). Any error stops
the build before a broken panel can be written.
"""

import sys
from pathlib import Path

from comic_errors import AssetError, StoryboardError, UsageError
from comic_layout import compute_panel_layout
from comic_sprites import load_sprite
from comic_storyboard import load_storyboard
from comic_svg import build_panel_svg, load_font_face

DEFAULT_OUTPUT_DIR = 'comic_panels'

CHEATSHEET = """Markdown cheatsheet:
  panelWidth: 1024
  panelHeight: 768
  spriteScale: 0.9
  fontFamily: 'Space Mono', monospace
  fontSize: 34
  fontColor: #111111
  fontPath: path/to/SpaceMono.ttf
  spriteRoot: output
  background: #ffffff
  margin: 48
  dialogueAreaHeight: 240
  outputExtension: svg

  ```comic Briefing
  background = #fefefe
  left_guy_smile: Ready for the briefing?
  right_girl_angry: Only if you updated the sprites.
  left_guy_smile: All polished. Let's deploy.
  ```"""


def usage(message=None):
    """Print the usage line and the storyboard cheatsheet to stderr."""
    if message:
        print(f"Error: {message}", file=sys.stderr)
    print("\nUsage: build_comic_panels.py <storyboard.md> [outputDir]\n", file=sys.stderr)
    print(CHEATSHEET, file=sys.stderr)


def parse_args(argv):
    """Return (storyboard path, output directory) from the command line."""
    if not argv:
        raise UsageError('Missing storyboard path.')
    if len(argv) > 2:
        raise UsageError(f"Unexpected arguments: {' '.join(argv[2:])}")

    storyboard_path = Path(argv[0]).resolve()
    output_dir = Path(argv[1] if len(argv) > 1 else DEFAULT_OUTPUT_DIR).resolve()

    if not storyboard_path.is_file():
        raise UsageError(f"Storyboard not found: {storyboard_path}", path=str(storyboard_path))

    return storyboard_path, output_dir


def panel_filename(index, extension):
    return f"panel-{index:02d}.{extension}"


def render_panels(storyboard):
    """Render every panel in memory; returns [(filename, svg), ...]."""
    settings = storyboard['settings']

    font_face = None
    if settings['fontPath']:
        font_face = load_font_face(settings['fontPath'])

    sprite_cache = {}
    rendered = []
    for panel in storyboard['panels']:
        sprites = {
            side: load_sprite(panel[side]['sprite'], sprite_cache)
            for side in ('left', 'right')
        }
        layout = compute_panel_layout(
            panel,
            settings,
            {side: (sprite['width'], sprite['height']) for side, sprite in sprites.items()},
        )
        svg = build_panel_svg(
            layout,
            {side: sprite['encoded'] for side, sprite in sprites.items()},
            font_face,
        )
        rendered.append((panel_filename(panel['index'], settings['outputExtension']), svg))

    return rendered


def write_panels(rendered, output_dir):
    """Write rendered panels; returns the written paths."""
    written = []
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        for filename, svg in rendered:
            out_path = output_dir / filename
            with open(out_path, 'w', encoding='utf-8', newline='\n') as f:
                f.write(svg)
            print(f"Created {out_path}")
            written.append(out_path)
    except OSError as e:
        raise AssetError(f"Cannot write panels to {output_dir}: {e.strerror}", path=str(output_dir)) from e
    return written


def main(argv=None):
    """Main entry point. Returns the process exit status."""
    if argv is None:
        argv = sys.argv[1:]

    if '--help' in argv or '-h' in argv:
        usage()
        return 0

    try:
        storyboard_path, output_dir = parse_args(argv)
    except UsageError as e:
        usage(e.message)
        return 1

    # stdout carries only the "Created <path>" lines
    try:
        storyboard = load_storyboard(storyboard_path)
        rendered = render_panels(storyboard)
        write_panels(rendered, output_dir)
    except StoryboardError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
