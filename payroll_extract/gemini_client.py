"""Gemini CLI client used by the language-model, vision and OCR services."""

import json
import logging
import pathlib
import re
import shutil
import subprocess
import tempfile
from typing import Optional

logger = logging.getLogger(__name__)

GEMINI_COMMAND = "gemini"

# Wrapper for JSON extraction prompts
PROMPT_PREFIX = """You are a payroll document extraction assistant. Analyze the provided input and return structured JSON data.

CRITICAL INSTRUCTIONS:
1. Return ONLY valid JSON - no markdown code blocks, no explanations, no commentary
2. Your entire response must be parseable by a JSON parser
3. All monetary values must be numbers (not strings), without $ or commas
4. Use null for anything that is not printed on the document; never guess
5. If you cannot read the document at all, return an error object:
   {"error": true, "message": "description of what went wrong"}

"""

PROMPT_SUFFIX = """

Remember: Return ONLY the JSON object. No other text."""


def _run_gemini_cli(
    prompt: str,
    timeout: int = 120,
    cwd: Optional[str] = None,
) -> str:
    """
    Run Gemini CLI with a prompt and return raw output.

    Args:
        prompt: The prompt to send to Gemini.
        timeout: Timeout in seconds (default 120).
        cwd: Working directory for the subprocess (optional).

    Returns:
        The raw stdout from Gemini CLI.

    Raises:
        RuntimeError: If Gemini CLI is missing, fails or times out.
    """
    cmd = [
        GEMINI_COMMAND,
        '--allowed-mcp-server-names', 'none',
        '-o', 'text',
        prompt
    ]

    logger.debug(f"gemini: {len(prompt)} char prompt, timeout {timeout}s")
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
            cwd=cwd
        )
        return result.stdout.strip()

    except FileNotFoundError as e:
        raise RuntimeError(f"Gemini CLI not found ('{GEMINI_COMMAND}')") from e
    except subprocess.TimeoutExpired:
        raise RuntimeError(f"Gemini CLI timed out after {timeout}s")
    except subprocess.CalledProcessError as e:
        raise RuntimeError(
            f"Gemini CLI failed with exit code {e.returncode}.\n"
            f"Stderr: {e.stderr}"
        ) from e


def parse_json_response(response_str: str) -> dict:
    """Pull the JSON object out of a model response.

    Handles markdown code fences and leading/trailing commentary.

    Raises:
        RuntimeError: If no JSON object can be decoded, or the model
            returned an error object.
    """
    if '```json' in response_str:
        response_str = response_str.split('```json')[1].split('```')[0].strip()
    elif '```' in response_str:
        response_str = response_str.split('```')[1].split('```')[0].strip()

    if not response_str.strip().startswith('{'):
        start = response_str.find('{')
        end = response_str.rfind('}') + 1
        if start >= 0 and end > start:
            response_str = response_str[start:end]

    try:
        data = json.loads(response_str)
    except json.JSONDecodeError as e:
        raise RuntimeError(
            f"Failed to parse JSON from Gemini output: {e}\n"
            f"Raw output: {response_str[:500]}..."
        ) from e

    if not isinstance(data, dict):
        raise RuntimeError(f"Expected a JSON object from Gemini, got {type(data).__name__}")
    if data.get("error") is True:
        raise RuntimeError(f"Gemini reported an error: {data.get('message', 'unknown')}")
    return data


def process_prompt(prompt: str, timeout: int = 120) -> str:
    """Send a plain text prompt and return the raw text response.

    Raises:
        RuntimeError: If Gemini CLI fails or times out.
    """
    return _run_gemini_cli(prompt, timeout=timeout)


def process_json_prompt(prompt: str, timeout: int = 120) -> dict:
    """Send a text-only extraction prompt and return the parsed JSON.

    Raises:
        RuntimeError: If Gemini CLI fails, times out or returns no JSON.
    """
    response = _run_gemini_cli(PROMPT_PREFIX + prompt + PROMPT_SUFFIX, timeout=timeout)
    return parse_json_response(response)


def process_file(
    prompt: str,
    data_file_path: str,
    timeout: int = 120,
    expect_json: bool = True,
):
    """
    Process a file (e.g., a single-page PDF) using Gemini CLI with a prompt.

    Copies the file to a temp directory under a sanitized name and runs
    Gemini from there so the file is inside its workspace.

    Args:
        prompt: Task description. Use {file_path} to reference the file.
        data_file_path: Path to the file to process.
        timeout: Timeout in seconds for Gemini CLI (default 120).
        expect_json: Wrap the prompt for JSON output and parse the response.
            When False the raw text response is returned.

    Returns:
        Parsed JSON dict, or the raw response text when expect_json is False.

    Raises:
        RuntimeError: If the file is missing or Gemini CLI fails.
    """
    data_path = pathlib.Path(data_file_path)
    if not data_path.exists():
        raise RuntimeError(f"File not found: {data_file_path}")

    temp_dir = tempfile.mkdtemp(prefix="gemini_")
    safe_stem = re.sub(r'[^a-zA-Z0-9_-]', '_', data_path.stem)
    safe_name = f"{safe_stem}{data_path.suffix}"

    try:
        shutil.copy(data_path, pathlib.Path(temp_dir) / safe_name)

        if expect_json:
            prompt = PROMPT_PREFIX + f"FILE TO ANALYZE: {safe_name}\n\n" + prompt + PROMPT_SUFFIX
        full_prompt = prompt.replace("{file_path}", safe_name)

        response_str = _run_gemini_cli(full_prompt, timeout=timeout, cwd=temp_dir)
        if not expect_json:
            return response_str
        return parse_json_response(response_str)
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)
