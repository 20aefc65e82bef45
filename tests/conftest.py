import struct
import zlib

import pytest


def make_png(width, height):
    """Smallest valid PNG of the given size: one grey pixel row per line."""
    def chunk(kind, data):
        body = kind + data
        return struct.pack('>I', len(data)) + body + struct.pack('>I', zlib.crc32(body) & 0xffffffff)

    ihdr = struct.pack('>IIBBBBB', width, height, 8, 0, 0, 0, 0)
    raw = b''.join(b'\x00' + b'\x80' * width for _ in range(height))
    return (
        b'\x89PNG\r\n\x1a\n'
        + chunk(b'IHDR', ihdr)
        + chunk(b'IDAT', zlib.compress(raw))
        + chunk(b'IEND', b'')
    )


SPRITES = {
    'male': {
        'male_smile.png': (100, 200),
        'male_angry.png': (100, 200),
        'male_laugh.png': (120, 240),
        'anxious.png': (100, 200),
        'happy_face.png': (100, 200),
    },
    'female': {
        'female_smile.png': (80, 160),
        'female_angry.png': (80, 160),
        'surprised.png': (80, 160),
    },
}


@pytest.fixture
def sprite_root(tmp_path):
    root = tmp_path / 'output'
    for category, files in SPRITES.items():
        folder = root / category
        folder.mkdir(parents=True)
        for filename, (width, height) in files.items():
            (folder / filename).write_bytes(make_png(width, height))
    return root


@pytest.fixture
def write_storyboard(tmp_path, sprite_root):
    """Write a storyboard next to the sprite root and return its path."""
    def _write(text, name='storyboard.md'):
        path = tmp_path / name
        path.write_text(text, encoding='utf-8')
        return path
    return _write


@pytest.fixture
def catalog():
    """In-memory catalogue; paths are never opened by the parser."""
    return {
        'male': {
            'smile': '/sprites/male/male_smile.png',
            'angry': '/sprites/male/male_angry.png',
            'laugh': '/sprites/male/male_laugh.png',
            'anxious': '/sprites/male/anxious.png',
            'happy_face': '/sprites/male/happy_face.png',
        },
        'female': {
            'smile': '/sprites/female/female_smile.png',
            'angry': '/sprites/female/female_angry.png',
            'surprised': '/sprites/female/surprised.png',
        },
    }
