from __future__ import annotations

import allure
import pytest

from ffmpeg_gateway.pipeline.command_parser import ShellToken, parse_command, tokenize
from ffmpeg_gateway.pipeline.errors import ErrorKind, ParseError, ValidationError

pytestmark = [
    allure.epic("Transcode Pipeline"),
    allure.feature("Command Parsing"),
]


def test_parse_strips_binary_prefix() -> None:
    assert parse_command("ffmpeg -i in.mp4 -c:v libx264 out.mp4") == [
        "-i",
        "in.mp4",
        "-c:v",
        "libx264",
        "out.mp4",
    ]


@pytest.mark.parametrize(
    "command_text",
    ["-i in.mp4 out.mp4", "ffprobe -i in.mp4", "ffmpeg", "FFMPEG -i a b", " ffmpeg -i a b"],
)
def test_parse_rejects_missing_prefix(command_text: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_command(command_text)
    assert excinfo.value.kind == ErrorKind.VALIDATION


def test_parse_honours_custom_binary_name() -> None:
    assert parse_command("avconv -i a.mp4 b.mp4", binary_name="avconv") == ["-i", "a.mp4", "b.mp4"]


@pytest.mark.parametrize("command_text", ["ffmpeg ", "ffmpeg    ", "ffmpeg \t\n"])
def test_parse_rejects_empty_arguments(command_text: str) -> None:
    with pytest.raises(ParseError, match="Arguments are empty"):
        parse_command(command_text)


@pytest.mark.parametrize(
    ("command_text", "operator"),
    [
        ("ffmpeg -i in.mp4 out.mp4 > log.txt", ">"),
        ("ffmpeg -i in.mp4 out.mp4 | cat", "|"),
        ("ffmpeg -i in.mp4 out.mp4; rm -rf /", ";"),
        ("ffmpeg -i in.mp4 out.mp4 && echo done", "&&"),
        ("ffmpeg -i in.mp4 out.mp4 &", "&"),
        ("ffmpeg -i in.mp4 out.mp4>>log.txt", ">>"),
        ("ffmpeg -i in.mp4 $(whoami).mp4", "("),
    ],
)
def test_parse_rejects_shell_operators(command_text: str, operator: str) -> None:
    with pytest.raises(ParseError) as excinfo:
        parse_command(command_text)
    assert str(excinfo.value) == f"Shell operators ({operator}) are not allowed in ffmpeg arguments"
    assert excinfo.value.kind == ErrorKind.PARSE


def test_quoted_operator_characters_are_plain_values() -> None:
    args = parse_command(r"""ffmpeg -i 'a|b.mp4' -metadata "title=x > y" out\;1.mp4""")
    assert args == ["-i", "a|b.mp4", "-metadata", "title=x > y", "out;1.mp4"]


def test_quotes_join_adjacent_chunks() -> None:
    assert parse_command("ffmpeg -i my' 'file\" \"name.mp4 out.mp4") == [
        "-i",
        "my file name.mp4",
        "out.mp4",
    ]


def test_double_quotes_keep_unknown_escapes() -> None:
    assert parse_command(r'ffmpeg -vf "drawtext=text=a\:b\"c" out.mp4') == [
        "-vf",
        'drawtext=text=a\\:b"c',
        "out.mp4",
    ]


def test_shell_expansion_characters_are_literal() -> None:
    assert parse_command("ffmpeg -i $HOME/*.mp4 #out.mp4") == ["-i", "$HOME/*.mp4", "#out.mp4"]


@pytest.mark.parametrize(
    "command_text",
    ["ffmpeg -i 'in.mp4 out.mp4", 'ffmpeg -i "in.mp4 out.mp4', "ffmpeg -i in.mp4 out\\"],
)
def test_broken_quoting_is_a_parse_error(command_text: str) -> None:
    with pytest.raises(ParseError):
        parse_command(command_text)


def test_tokenizer_marks_operators() -> None:
    assert list(tokenize("a>b '>' c")) == [
        ShellToken("a"),
        ShellToken(">", is_operator=True),
        ShellToken("b"),
        ShellToken(">"),
        ShellToken("c"),
    ]
