import pytest

from astrbot_plugin_mediaderive.utils.svg_metrics import ex_to_px, get_svg_attribute, measure_svg

from .conftest import SAMPLE_SVG


@pytest.mark.parametrize(
    "value, ex, expected",
    [
        ("2ex", 6, 12),
        ("2.5ex", 8, 20),
        ("-0.25ex", 4, -1),
        ("12", 6, 12),
        ("12px", 6, 12),
    ],
)
def test_ex_to_px(value, ex, expected):
    assert ex_to_px(value, ex) == pytest.approx(expected)


def test_measure_rounds_up():
    # 8.5ex * 6 = 51, 2.2ex * 6 = 13.2
    assert measure_svg(SAMPLE_SVG, 6) == (51, 14)


def test_measure_ignores_nested_elements():
    svg = (
        '<svg width="1ex" height="1ex"><svg width="100ex" height="100ex"></svg></svg>'
    )
    assert measure_svg(svg, 10) == (10, 10)


def test_single_quoted_attribute():
    assert get_svg_attribute("<svg width='3ex' height='1ex'/>", "width") == "3ex"


def test_missing_attribute():
    with pytest.raises(ValueError):
        get_svg_attribute('<svg height="1ex"></svg>', "width")


def test_not_svg():
    with pytest.raises(ValueError):
        measure_svg("<math></math>", 6)
