"""Natural-language task to ffmpeg command, via a CLI agent subprocess."""

from __future__ import annotations

import json
import logging
import re
import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

from ffmpeg_gateway.pipeline.downloads import DownloadedInput
from ffmpeg_gateway.pipeline.errors import TranslationError

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TEMPLATE = "claude -p --model {model} {prompt}"
DEFAULT_MODEL = "sonnet"
DEFAULT_TIMEOUT_SECONDS = 120.0

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)

_PROMPT_TEMPLATE = """\
You are an FFmpeg expert. Convert the following task into a valid FFmpeg command.

Task: {task}

Available input files:
{inputs}

Requirements:
1. Generate ONLY the FFmpeg arguments (do not include 'ffmpeg' prefix)
2. Use the exact local file paths provided for input files
3. Output files should use simple filenames (e.g., output.mp4, result.wav)
4. Ensure the command is valid and will execute successfully
5. Optimize for quality and efficiency

Respond with valid JSON in this exact format:
{{
  "command": "the FFmpeg arguments without ffmpeg prefix",
  "reasoning": "brief explanation of what the command does"
}}"""


@dataclass(slots=True, frozen=True)
class Translation:
    command: str
    reasoning: str | None = None


def build_prompt(task: str, inputs: Sequence[DownloadedInput]) -> str:
    lines = [
        f"Input {index}: {item.display_name} (path: {item.local_path})"
        for index, item in enumerate(inputs, start=1)
    ]
    return _PROMPT_TEMPLATE.format(task=task, inputs="\n".join(lines))


def build_run_args(*, command_template: str, model: str, prompt: str) -> list[str]:
    stripped = command_template.strip()
    if not stripped:
        raise TranslationError("Translator command template is empty.")
    if "{prompt}" not in stripped:
        raise TranslationError("Translator command template must include {prompt}.")
    try:
        rendered = stripped.format(model=shlex.quote(model), prompt=shlex.quote(prompt))
    except (KeyError, IndexError) as error:
        raise TranslationError(
            f"Unsupported command template placeholder: {error}",
        ) from error
    argv = shlex.split(rendered)
    if not argv:
        raise TranslationError("Translator command template rendered empty command.")
    return argv


def parse_translation(stdout_text: str) -> Translation:
    """Recover `{"command": ..., "reasoning": ...}` from agent stdout."""

    payload = _parse_json_payload(stdout_text.strip())
    if payload is None:
        raise TranslationError("Translator returned no JSON object.")
    command = payload.get("command")
    if not isinstance(command, str) or not command.strip():
        raise TranslationError("Translator response has no command.")
    reasoning = payload.get("reasoning")
    return Translation(
        command=command.strip(),
        reasoning=reasoning if isinstance(reasoning, str) else None,
    )


class CliCommandTranslator:
    """Runs a CLI agent command template and reads its JSON answer."""

    def __init__(
        self,
        *,
        command_template: str = DEFAULT_COMMAND_TEMPLATE,
        model: str = DEFAULT_MODEL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.command_template = command_template
        self.model = model
        self.timeout_seconds = timeout_seconds

    def translate(self, task: str, inputs: Sequence[DownloadedInput]) -> str:
        prompt = build_prompt(task, inputs)
        argv = build_run_args(
            command_template=self.command_template,
            model=self.model,
            prompt=prompt,
        )
        try:
            completed = subprocess.run(  # noqa: S603
                argv,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as error:
            raise TranslationError(f"Translator command not found: {argv[0]}") from error
        except subprocess.TimeoutExpired as error:
            raise TranslationError(
                f"Translator timed out after {self.timeout_seconds:g} seconds",
                transient=True,
            ) from error
        except OSError as error:
            raise TranslationError(
                f"Translator failed to start: {error}",
                transient=True,
            ) from error

        if completed.returncode != 0:
            detail = completed.stderr.strip() or completed.stdout.strip()
            raise TranslationError(
                f"Translator exited with code {completed.returncode}: {detail}",
            )

        translation = parse_translation(completed.stdout)
        logger.info("Translator reasoning: %s", translation.reasoning or "-")
        return translation.command


def _parse_json_payload(text: str) -> dict[str, object] | None:
    if not text:
        return None
    direct = _try_load_dict(text)
    if direct is not None:
        return direct

    fenced = _FENCED_JSON.search(text)
    if fenced is not None:
        payload = _try_load_dict(fenced.group(1))
        if payload is not None:
            return payload

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return _try_load_dict(text[start : end + 1])


def _try_load_dict(raw: str) -> dict[str, object] | None:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed
