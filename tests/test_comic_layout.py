import pytest

from comic_errors import ConfigurationError
from comic_layout import (
    compute_panel_layout,
    effective_settings,
    max_chars_per_line,
    wrap_text,
)
from comic_storyboard import DEFAULT_SETTINGS, new_panel


def make_settings(**overrides):
    settings = dict(DEFAULT_SETTINGS)
    settings.update(panelWidth=800, panelHeight=600, margin=40, dialogueAreaHeight=200,
                    spriteScale=1.0, fontSize=20)
    settings.update(overrides)
    return settings


def make_panel(dialogue=None, **overrides):
    panel = new_panel(1, 'Test')
    panel['left']['sprite'] = '/sprites/male/smile.png'
    panel['right']['sprite'] = '/sprites/female/angry.png'
    panel['dialogue'] = dialogue or [
        {'speaker': 'left', 'text': 'Hi'},
        {'speaker': 'right', 'text': 'No'},
    ]
    panel.update(overrides)
    return panel


def test_effective_settings_prefer_panel_overrides():
    effective = effective_settings(make_settings(), make_panel(margin=10, background='#000'))
    assert effective['margin'] == 10
    assert effective['background'] == '#000'
    assert effective['fontSize'] == 20


def test_wrap_text_is_greedy():
    assert wrap_text('aa bb cc dd', 5) == ['aa bb', 'cc dd']
    assert wrap_text('aa bb cc', 8) == ['aa bb cc']


def test_wrap_text_never_splits_words():
    lines = wrap_text('tiny supercalifragilisticexpialidocious end', 10)
    assert lines == ['tiny', 'supercalifragilisticexpialidocious', 'end']


def test_wrap_text_empty():
    assert wrap_text('', 12) == ['']
    assert wrap_text('   ', 12) == ['']


def test_max_chars_per_line():
    # 0.38 * 800 / (0.6 * 20) = 25.33
    assert max_chars_per_line(800, 20) == 25
    assert max_chars_per_line(100, 40) == 12


def test_sprites_fit_and_share_a_baseline():
    layout = compute_panel_layout(make_panel(), make_settings(), {'left': (100, 200), 'right': (50, 150)})
    left = layout['sprites']['left']
    right = layout['sprites']['right']
    assert (left['width'], left['height']) == (100, 200)
    assert (right['width'], right['height']) == (50, 150)
    # 600 - 40 - max(200, 150)
    assert left['y'] == right['y'] == 360
    assert left['x'] == 40
    assert right['x'] == 800 - 40 - 50


def test_oversized_sprite_is_capped_to_sprite_area():
    settings = make_settings()
    layout = compute_panel_layout(make_panel(), settings, {'left': (2000, 4000), 'right': (100, 100)})
    left = layout['sprites']['left']
    sprite_area = settings['panelHeight'] - settings['dialogueAreaHeight']
    assert left['height'] == pytest.approx(sprite_area)
    assert left['width'] == pytest.approx(200)


@pytest.mark.parametrize('scale', [0.25, 0.85, 1.0])
def test_sprite_never_exceeds_sprite_area(scale):
    settings = make_settings(spriteScale=scale, dialogueAreaHeight=200)
    sizes = {'left': (2000, 4000), 'right': (300, 50)}
    layout = compute_panel_layout(make_panel(), settings, sizes)
    sprite_area = settings['panelHeight'] - settings['dialogueAreaHeight']
    for side in ('left', 'right'):
        assert layout['sprites'][side]['height'] <= sprite_area
    assert layout['sprites']['left']['height'] == pytest.approx(sprite_area * scale)


def test_sprite_scale_applies_on_top_of_fit():
    panel = make_panel(spriteScale=0.5)
    layout = compute_panel_layout(panel, make_settings(), {'left': (100, 800), 'right': (100, 200)})
    assert layout['sprites']['left']['height'] == pytest.approx(200)
    assert layout['sprites']['right']['height'] == pytest.approx(100)


def test_default_mirroring():
    layout = compute_panel_layout(make_panel(), make_settings(), {'left': (10, 10), 'right': (10, 10)})
    assert layout['sprites']['left']['flip'] is False
    assert layout['sprites']['right']['flip'] is True


def test_explicit_mirroring():
    panel = make_panel()
    panel['left']['flip'] = True
    panel['right']['flip'] = False
    layout = compute_panel_layout(panel, make_settings(), {'left': (10, 10), 'right': (10, 10)})
    assert layout['sprites']['left']['flip'] is True
    assert layout['sprites']['right']['flip'] is False


def test_dialogue_blocks_stack_and_anchor():
    dialogue = [
        {'speaker': 'left', 'text': 'word ' * 10},
        {'speaker': 'right', 'text': 'short'},
        {'speaker': 'left', 'text': ''},
    ]
    layout = compute_panel_layout(make_panel(dialogue), make_settings(), {'left': (10, 10), 'right': (10, 10)})
    first, second, third = layout['dialogue']

    assert (first['x'], first['anchor']) == (40, 'start')
    assert (second['x'], second['anchor']) == (760, 'end')
    assert first['lineHeight'] == pytest.approx(27)

    # 10 x "word" wraps at 25 chars into 5 + 5 words
    assert first['lines'] == ['word word word word word', 'word word word word word']
    assert first['y'] == 60
    assert second['y'] == pytest.approx(60 + 2 * 27 + 16)
    assert third['y'] == pytest.approx(second['y'] + 27 + 16)
    assert third['lines'] == ['']


def test_css_line_height_rounds_half_up():
    layout = compute_panel_layout(make_panel(fontSize=25), make_settings(), {'left': (10, 10), 'right': (10, 10)})
    assert layout['font']['cssLineHeight'] == 33


def test_dialogue_area_must_leave_room_for_sprites():
    with pytest.raises(ConfigurationError) as excinfo:
        compute_panel_layout(make_panel(dialogueAreaHeight=600), make_settings(), {'left': (1, 1), 'right': (1, 1)})
    assert excinfo.value.panel == '"Test"'


def test_layout_is_deterministic():
    sizes = {'left': (123, 456), 'right': (78, 90)}
    assert compute_panel_layout(make_panel(), make_settings(), sizes) == \
        compute_panel_layout(make_panel(), make_settings(), sizes)
