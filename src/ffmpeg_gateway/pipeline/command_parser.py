"""Shell-like tokenization of command text into a safe argument vector."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from ffmpeg_gateway.pipeline.errors import ParseError, ValidationError

DEFAULT_BINARY_NAME = "ffmpeg"

_OPERATOR_CHARS = frozenset("|&;<>()")
# Longest first so that "&&" wins over "&".
_OPERATORS: tuple[str, ...] = (
    ";;&",
    "<<-",
    "&&",
    "||",
    ";;",
    "<<",
    ">>",
    ">&",
    "<&",
    ">|",
    "<>",
    "|&",
    "&",
    "|",
    ";",
    "<",
    ">",
    "(",
    ")",
)
_DOUBLE_QUOTE_ESCAPABLE = frozenset('"\\$`\n')


@dataclass(slots=True, frozen=True)
class ShellToken:
    """One lexical unit: either a value or an unquoted control operator."""

    value: str
    is_operator: bool = False


def parse_command(command_text: str, binary_name: str = DEFAULT_BINARY_NAME) -> list[str]:
    """Strip the binary prefix and return the argument vector.

    Raises `ValidationError` when the text does not start with the binary
    name followed by a space, and `ParseError` when the remainder contains a
    shell control operator, has broken quoting, or yields no arguments.
    """

    prefix = f"{binary_name} "
    if not command_text.startswith(prefix):
        raise ValidationError(f'Command must start with "{prefix}"')

    remainder = command_text[len(prefix) :].strip()
    if not remainder:
        raise ParseError("Arguments are empty")

    args: list[str] = []
    for token in tokenize(remainder):
        if token.is_operator:
            raise ParseError(
                f"Shell operators ({token.value}) are not allowed in {binary_name} arguments",
            )
        args.append(token.value)

    if not args:
        raise ParseError("Arguments are empty")
    return args


def tokenize(text: str) -> Iterator[ShellToken]:  # noqa: C901, PLR0912
    """Split text with POSIX-shell quoting rules.

    Operator characters only form operator tokens when unquoted and
    unescaped; inside quotes they are ordinary value characters.
    """

    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if char.isspace():
            index += 1
            continue

        if char in _OPERATOR_CHARS:
            operator = _match_operator(text, index)
            yield ShellToken(operator, is_operator=True)
            index += len(operator)
            continue

        chunks: list[str] = []
        while index < length:
            char = text[index]
            if char.isspace() or char in _OPERATOR_CHARS:
                break
            if char == "\\":
                if index + 1 >= length:
                    raise ParseError("Trailing escape character in arguments")
                if text[index + 1] != "\n":
                    chunks.append(text[index + 1])
                index += 2
                continue
            if char == "'":
                closing = text.find("'", index + 1)
                if closing == -1:
                    raise ParseError("Unterminated single quote in arguments")
                chunks.append(text[index + 1 : closing])
                index = closing + 1
                continue
            if char == '"':
                value, index = _read_double_quoted(text, index + 1)
                chunks.append(value)
                continue
            chunks.append(char)
            index += 1

        yield ShellToken("".join(chunks))


def _match_operator(text: str, index: int) -> str:
    for operator in _OPERATORS:
        if text.startswith(operator, index):
            return operator
    return text[index]


def _read_double_quoted(text: str, index: int) -> tuple[str, int]:
    chunks: list[str] = []
    length = len(text)
    while index < length:
        char = text[index]
        if char == '"':
            return "".join(chunks), index + 1
        if char == "\\" and index + 1 < length and text[index + 1] in _DOUBLE_QUOTE_ESCAPABLE:
            if text[index + 1] != "\n":
                chunks.append(text[index + 1])
            index += 2
            continue
        chunks.append(char)
        index += 1
    raise ParseError("Unterminated double quote in arguments")
