import pytest

from kubeaudit import colors


@pytest.mark.parametrize(
    "func, code",
    [
        (colors.red, colors.RED_COLOR),
        (colors.green, colors.GREEN_COLOR),
        (colors.yellow, colors.YELLOW_COLOR),
        (colors.blue, colors.BLUE_COLOR),
        (colors.purple, colors.PURPLE_COLOR),
        (colors.cyan, colors.CYAN_COLOR),
        (colors.gray, colors.GRAY_COLOR),
        (colors.white, colors.WHITE_COLOR),
    ],
)
def test_named_colours_use_their_code(func, code):
    assert func("text") == colors.colored(code, "text")


def test_colored_wraps_text():
    result = colors.colored(colors.CYAN_COLOR, "hello")
    assert result.startswith(colors.CYAN_COLOR)
    assert result.endswith(colors.RESET)
    assert result[len(colors.CYAN_COLOR): len(result) - len(colors.RESET)] == "hello"


def test_colored_empty_text_is_just_codes():
    assert colors.colored(colors.RED_COLOR, "") == colors.RED_COLOR + colors.RESET


def test_colours_are_distinct_or_all_disabled():
    outputs = [
        colors.red("x"),
        colors.green("x"),
        colors.yellow("x"),
        colors.blue("x"),
        colors.purple("x"),
        colors.cyan("x"),
        colors.gray("x"),
        colors.white("x"),
    ]
    if len(set(outputs)) == 1:
        assert outputs[0] == "x"
    else:
        assert len(set(outputs)) == len(outputs)
        assert all(output != "x" for output in outputs)