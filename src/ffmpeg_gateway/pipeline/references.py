"""Input locator and output filename extraction from ffmpeg arguments.

ffmpeg syntax: inputs follow an ``-i`` flag, outputs are standalone file
arguments that appear after the first input.

    -i input.mp4 -c:v libx264 output.mp4   -> ["output.mp4"]
    -i input.mp4 out1.mp4 out2.webm        -> ["out1.mp4", "out2.webm"]

The output scan is a heuristic over a fixed table of value-consuming flags.
Outputs embedded in filter graphs are not found, and an unknown flag that
takes a value makes that value look like an output.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

INPUT_FLAG = "-i"

VALUE_FLAGS: tuple[str, ...] = (
    "-i",
    "-f",
    "-c",
    "-codec",
    "-vcodec",
    "-acodec",
    "-b:v",
    "-b:a",
    "-r",
    "-s",
    "-ar",
    "-ac",
    "-vf",
    "-af",
    "-t",
    "-ss",
    "-to",
    "-frames:v",
    "-frames:a",
    "-metadata",
    "-filter_complex",
    "-lavfi",
    "-map",
    "-map_metadata",
    "-disposition",
    "-stream_loop",
    "-itsoffset",
    "-crf",
    "-preset",
    "-profile",
    "-level",
    "-qscale",
    "-g",
    "-bf",
    "-maxrate",
    "-bufsize",
    "-pix_fmt",
)

_LOCATOR_PATTERN = re.compile(r"https?://[^\s'\"<>]+")


class ArgumentKind(str, Enum):
    """Role of one token in an argument vector."""

    FLAG = "flag"
    FLAG_VALUE = "flag_value"
    INPUT_REFERENCE = "input_reference"
    OUTPUT_REFERENCE = "output_reference"
    POSITIONAL = "positional"


@dataclass(slots=True, frozen=True)
class ArgumentVector:
    """Tokens with a parallel per-token classification."""

    tokens: tuple[str, ...]
    kinds: tuple[ArgumentKind, ...]

    @classmethod
    def from_tokens(cls, tokens: Sequence[str]) -> ArgumentVector:
        return cls(tokens=tuple(tokens), kinds=tuple(classify_arguments(tokens)))

    def as_list(self) -> list[str]:
        return list(self.tokens)

    def output_names(self) -> list[str]:
        return [
            token
            for token, kind in zip(self.tokens, self.kinds, strict=True)
            if kind == ArgumentKind.OUTPUT_REFERENCE
        ]

    def replace_locators(self, local_paths: Mapping[str, str]) -> ArgumentVector:
        """Substitute downloaded local paths for every locator occurrence."""

        if not local_paths:
            return self

        def _substitute(match: re.Match[str]) -> str:
            return local_paths.get(match.group(0), match.group(0))

        tokens = tuple(_LOCATOR_PATTERN.sub(_substitute, token) for token in self.tokens)
        return ArgumentVector(tokens=tokens, kinds=self.kinds)

    def replace_outputs(self, output_paths: Mapping[str, str]) -> ArgumentVector:
        """Substitute absolute paths for tokens classified as outputs."""

        tokens = tuple(
            output_paths.get(token, token) if kind == ArgumentKind.OUTPUT_REFERENCE else token
            for token, kind in zip(self.tokens, self.kinds, strict=True)
        )
        return ArgumentVector(tokens=tokens, kinds=self.kinds)


def extract_input_locators(tokens: Sequence[str]) -> list[str]:
    """Return http(s) locators found in tokens, first appearance order, no repeats."""

    seen: set[str] = set()
    locators: list[str] = []
    for token in tokens:
        for locator in _LOCATOR_PATTERN.findall(token):
            if locator in seen:
                continue
            seen.add(locator)
            locators.append(locator)
    return locators


def classify_arguments(tokens: Sequence[str]) -> list[ArgumentKind]:
    """Classify every token of an ffmpeg argument vector."""

    kinds: list[ArgumentKind] = []
    skip_next = False
    next_is_input = False
    seen_input = False

    for token in tokens:
        if not token:
            kinds.append(ArgumentKind.POSITIONAL)
            continue

        if skip_next:
            skip_next = False
            kinds.append(ArgumentKind.INPUT_REFERENCE if next_is_input else ArgumentKind.FLAG_VALUE)
            next_is_input = False
            continue

        if token == INPUT_FLAG:
            seen_input = True
            skip_next = True
            next_is_input = True
            kinds.append(ArgumentKind.FLAG)
            continue

        if token.startswith("-"):
            skip_next = _requires_value(token)
            kinds.append(ArgumentKind.FLAG)
            continue

        if token.startswith("[") or "://" in token or "=" in token:
            kinds.append(ArgumentKind.POSITIONAL)
            continue

        kinds.append(ArgumentKind.OUTPUT_REFERENCE if seen_input else ArgumentKind.POSITIONAL)

    return kinds


def extract_output_names(tokens: Sequence[str]) -> list[str]:
    """Return tokens that name output files, in order."""

    return ArgumentVector.from_tokens(tokens).output_names()


def _requires_value(flag: str) -> bool:
    return any(flag == candidate or flag.startswith(f"{candidate}:") for candidate in VALUE_FLAGS)
