from __future__ import annotations

import allure
import pytest

from ffmpeg_gateway.pipeline.references import (
    ArgumentKind,
    ArgumentVector,
    classify_arguments,
    extract_input_locators,
    extract_output_names,
)

pytestmark = [
    allure.epic("Transcode Pipeline"),
    allure.feature("Reference Extraction"),
]


@pytest.mark.parametrize(
    ("tokens", "expected"),
    [
        (["-i", "in.mp4", "-c:v", "libx264", "out.mp4"], ["out.mp4"]),
        (["-i", "a.mp4", "-i", "b.mp4", "x.mp4", "y.mp4"], ["x.mp4", "y.mp4"]),
        (["-i", "in.mp4", "-vf", "scale=1280:720", "out.mp4"], ["out.mp4"]),
        (["-i", "in.mp4", "-map", "[v]", "-b:v", "2M", "-y", "out.mkv"], ["out.mkv"]),
        (["-i", "in.mp4", "-c:a:0", "aac", "out.m4a"], ["out.m4a"]),
        (["-i", "in.mp4", "-f", "null", "-"], []),
        (["out.mp4", "-i", "in.mp4"], []),
    ],
)
def test_output_extraction(tokens: list[str], expected: list[str]) -> None:
    assert extract_output_names(tokens) == expected


def test_token_with_equals_is_never_an_output() -> None:
    tokens = ["-i", "in.mp4", "scale=1280:720", "out.mp4"]
    assert "scale=1280:720" not in extract_output_names(tokens)


def test_extraction_is_pure() -> None:
    tokens = ["-i", "https://cdn.example.com/a.mp4", "-ss", "5", "clip.mp4", "thumb.jpg"]
    assert extract_output_names(tokens) == extract_output_names(tokens)
    assert extract_input_locators(tokens) == extract_input_locators(tokens)
    assert tokens == ["-i", "https://cdn.example.com/a.mp4", "-ss", "5", "clip.mp4", "thumb.jpg"]


def test_unknown_value_flag_value_is_a_false_positive() -> None:
    # Known limitation: values of flags outside the table look like outputs.
    assert extract_output_names(["-i", "in.mp4", "-movflags", "faststart", "out.mp4"]) == [
        "faststart",
        "out.mp4",
    ]


def test_input_locators_are_ordered_and_unique() -> None:
    tokens = [
        "-i",
        "https://cdn.example.com/a.mp4",
        "-i",
        "http://media.example.org/b.wav",
        "-i",
        "https://cdn.example.com/a.mp4",
        "-vf",
        "movie=https://cdn.example.com/logo.png[wm]",
        "out.mp4",
    ]
    assert extract_input_locators(tokens) == [
        "https://cdn.example.com/a.mp4",
        "http://media.example.org/b.wav",
        "https://cdn.example.com/logo.png[wm]",
    ]


def test_classification_marks_every_token() -> None:
    tokens = ["-y", "-i", "in.mp4", "-c:v", "libx264", "[0:v]", "out.mp4"]
    assert classify_arguments(tokens) == [
        ArgumentKind.FLAG,
        ArgumentKind.FLAG,
        ArgumentKind.INPUT_REFERENCE,
        ArgumentKind.FLAG,
        ArgumentKind.FLAG_VALUE,
        ArgumentKind.POSITIONAL,
        ArgumentKind.OUTPUT_REFERENCE,
    ]


def test_vector_rewrites_keep_classification() -> None:
    vector = ArgumentVector.from_tokens(
        ["-i", "https://cdn.example.com/a.mp4", "-c", "copy", "copy"],
    )
    rewritten = vector.replace_locators(
        {"https://cdn.example.com/a.mp4": "/tmp/req/inputs/a.mp4"},
    ).replace_outputs({"copy": "/tmp/req/outputs/copy"})

    assert rewritten.as_list() == [
        "-i",
        "/tmp/req/inputs/a.mp4",
        "-c",
        "copy",
        "/tmp/req/outputs/copy",
    ]
    assert rewritten.kinds == vector.kinds
    assert vector.tokens[1] == "https://cdn.example.com/a.mp4"
