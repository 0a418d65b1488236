from servertrack.markup import (
    LineBreak,
    Styled,
    Text,
    parse_markup,
    render_html,
    strip_markup,
)
from servertrack.styles import FontStyle


def test_parse_color_span() -> None:
    nodes = parse_markup("Hello [color=red]World[/color]!")
    assert nodes == [
        Text("Hello "),
        Styled(kind="color", children=(Text("World"),), color="#ff0000"),
        Text("!"),
    ]


def test_unterminated_tag_is_literal_text() -> None:
    assert parse_markup("[color=red]unterminated") == [Text("[color=red]unterminated")]


def test_missing_bracket_is_literal_text() -> None:
    assert parse_markup("a [font=default-bold oops") == [Text("a [font=default-bold oops")]


def test_malformed_tag_does_not_hide_later_tags() -> None:
    nodes = parse_markup("[font=bold [color=red]x[/color]")
    assert nodes == [
        Text("[font=bold "),
        Styled(kind="color", children=(Text("x"),), color="#ff0000"),
    ]


def test_nested_tags() -> None:
    nodes = parse_markup("[font=heading-1]big [color=green]go[/color][/font]")
    assert nodes == [
        Styled(
            kind="font",
            children=(
                Text("big "),
                Styled(kind="color", children=(Text("go"),), color="#00ff00"),
            ),
            font=FontStyle(weight=700, size="1.5em"),
        )
    ]


def test_newlines_become_line_breaks_inside_and_outside_tags() -> None:
    nodes = parse_markup("a\nb[color=red]c\nd[/color]")
    assert nodes == [
        Text("a"),
        LineBreak(),
        Text("b"),
        Styled(kind="color", children=(Text("c"), LineBreak(), Text("d")), color="#ff0000"),
    ]


def test_unknown_font_keeps_text_without_style() -> None:
    nodes = parse_markup("[font=comic-sans]hi[/font]")
    assert nodes == [Styled(kind="font", children=(Text("hi"),), font=None)]
    assert render_html(nodes) == "hi"


def test_depth_guard_stops_tag_recognition() -> None:
    nodes = parse_markup("[color=red][font=default-bold]x[/font][/color]", max_depth=1)
    assert nodes == [
        Styled(kind="color", children=(Text("[font=default-bold]x[/font]"),), color="#ff0000")
    ]
    assert strip_markup("[color=red][/color]tail") == "tail"


def test_render_html_escapes_user_content() -> None:
    html = render_html(parse_markup("<script>alert(1)</script>\n[color=red]<b>[/color]"))
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert '<br><span style="color: #ff0000">&lt;b&gt;</span>' in html


def test_render_html_ignores_injected_color_value() -> None:
    html = render_html(parse_markup('[color=red" onclick="x]hi[/color]'))
    assert "onclick" not in html
    assert html == '<span style="color: rgb(255, 255, 255)">hi</span>'


def test_strip_markup() -> None:
    assert strip_markup("[font=default-bold]PvP[/font] [color=1,0,0]EU[/color]") == "PvP EU"
    assert strip_markup("") == ""
