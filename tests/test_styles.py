from servertrack.styles import FontStyle, resolve_color, resolve_font


def test_named_colors_case_insensitive() -> None:
    assert resolve_color("red") == "#ff0000"
    assert resolve_color("Grey") == "#808080"
    assert resolve_color("AQUA") == "#00ffff"
    assert resolve_color("acid") == "#b0ff00"
    assert resolve_color("default") == "inherit"


def test_hex_colors_with_or_without_hash() -> None:
    assert resolve_color("#A1B2C3") == "#a1b2c3"
    assert resolve_color("a1b2c3") == "#a1b2c3"
    assert resolve_color("#abc") == "inherit"
    assert resolve_color("#gggggg") == "inherit"


def test_rgb_float_form() -> None:
    assert resolve_color("r=1,g=0,b=0") == "rgb(255, 0, 0)"
    assert resolve_color("r=0.5, b=0") == "rgb(127, 255, 0)"
    assert resolve_color("r=2,g=-1,b=0.25") == "rgb(255, 0, 63)"


def test_rgb_form_falls_back_to_full_channels() -> None:
    assert resolve_color("1,0.5,0") == "rgb(255, 255, 255)"
    assert resolve_color("r=abc,g=nan,b=inf") == "rgb(255, 255, 255)"


def test_unknown_color_is_inherit() -> None:
    assert resolve_color("not-a-color") == "inherit"
    assert resolve_color("red;background:url(x)") == "inherit"
    assert resolve_color("") == "inherit"


def test_font_table() -> None:
    assert resolve_font("default") == FontStyle()
    assert resolve_font("default-small-semibold") == FontStyle(weight=600, size="0.85em")
    assert resolve_font("Heading-2") == FontStyle(weight=700, size="1.25em")
    assert resolve_font("default-large-bold").css() == "font-size: 1.2em; font-weight: 700"


def test_unknown_font_resolves_to_nothing() -> None:
    assert resolve_font("monospace") is None
    assert resolve_font("default-bold; color: red") is None
