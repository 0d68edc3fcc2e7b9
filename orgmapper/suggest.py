"""
Column-mapping suggestions from an LLM (OpenAI chat completions).

Given the CSV header names, the model is asked which header best matches
each target field.  The reply is a JSON object of the form
``{"columnMapping": {"manager": "<header>", ...}}`` with ``""`` for fields
it cannot match confidently.  Any failure (missing API key, network error,
unparseable reply) is raised as :class:`MappingSuggestionError`; callers fall
back to manual mapping.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from openai import AsyncOpenAI, OpenAI, OpenAIError

from .config import LLM_MODEL, LLM_TEMPERATURE, SUGGESTION_KEY_ALIASES, TARGET_FIELDS
from .errors import MappingSuggestionError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert in data mapping. You map CSV column headers to a fixed "
    "set of target fields and answer with JSON only."
)

PROMPT_TEMPLATE = """
Predefined target fields and common CSV column names they correspond to:
- manager: the direct manager of the employee (e.g. 'Manager', 'Manager User Name', 'Reports To', 'Direct Supervisor', 'Manager ID').
- location: the work location of the employee (e.g. 'Location', 'Site', 'Office Location', 'Work Site', 'Location Unified').
- teamProject: the team, project or department (e.g. 'Team', 'Project', 'Department', 'Cost Center', 'Org Unit').
- employeeType: the type of employment (e.g. 'Employee Type', 'Person Type', 'Worker Type', 'Employment Status', 'FTE/Contractor').
- level: the job level, grade or seniority (e.g. 'Level', 'Job Level', 'Grade', 'Rank').
- username: the employee's own user name, the value other rows use to name them as manager (e.g. 'User Name', 'Login', 'Alias', 'Email').

CSV header provided:
{csv_header}

For each target field pick the single best matching header from the CSV header.
- The value must be the exact header text.
- Use "" when no header is a reasonably confident match. Never invent headers.
- Prefer the column most directly related to the field, e.g. 'Manager User Name' over 'Manager ID' for manager.

Return ONLY a JSON object of this shape:
{{"columnMapping": {{"manager": "...", "location": "...", "teamProject": "...", "employeeType": "...", "level": "...", "username": "..."}}}}
""".strip()


def build_messages(headers: Sequence[str]) -> List[Dict[str, str]]:
    prompt = PROMPT_TEMPLATE.format(csv_header=",".join(headers))
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def _extract_json_block(text: str) -> Any:
    if not text:
        raise ValueError("empty model reply")
    text = re.sub(r"^```(?:json)?|```$", "", text.strip(), flags=re.I | re.M)
    m = re.search(r"\{.*\}", text, flags=re.S)
    if not m:
        raise ValueError("no JSON found in model reply")
    return json.loads(m.group(0))


def parse_reply(text: Optional[str]) -> Dict[str, str]:
    """Extract the field -> header suggestion from the model's reply text.

    Keys are normalized to target field names; unknown keys are dropped and
    non-string values become ``""``.
    """
    try:
        data = _extract_json_block(text or "")
    except ValueError as exc:
        raise MappingSuggestionError(f"Unusable suggestion reply: {exc}") from exc

    if not isinstance(data, dict):
        raise MappingSuggestionError("Suggestion reply is not a JSON object")
    column_mapping = data.get("columnMapping", data)
    if not isinstance(column_mapping, dict):
        raise MappingSuggestionError("Suggestion reply has no 'columnMapping' object")

    suggestion: Dict[str, str] = {}
    for key, value in column_mapping.items():
        target = SUGGESTION_KEY_ALIASES.get(key, key)
        if target in TARGET_FIELDS:
            suggestion[target] = value.strip() if isinstance(value, str) else ""
    return suggestion


def _reply_text(resp: Any) -> Optional[str]:
    try:
        return resp.choices[0].message.content
    except (AttributeError, IndexError) as exc:
        raise MappingSuggestionError("Suggestion response has no message content") from exc


def suggest_mapping(
    headers: Sequence[str],
    *,
    client: Optional[OpenAI] = None,
    model: str = LLM_MODEL,
) -> Dict[str, str]:
    """Ask the model for a mapping (blocking)."""
    if not headers:
        return {}
    try:
        client = client or OpenAI()
        resp = client.chat.completions.create(
            model=model,
            temperature=LLM_TEMPERATURE,
            messages=build_messages(headers),
            response_format={"type": "json_object"},
        )
    except OpenAIError as exc:
        logger.warning("Mapping suggestion call failed: %s", exc)
        raise MappingSuggestionError(str(exc)) from exc
    return parse_reply(_reply_text(resp))


async def suggest_mapping_async(
    headers: Sequence[str],
    *,
    client: Optional[AsyncOpenAI] = None,
    model: str = LLM_MODEL,
) -> Dict[str, str]:
    """Ask the model for a mapping without blocking the event loop."""
    if not headers:
        return {}
    try:
        client = client or AsyncOpenAI()
        resp = await client.chat.completions.create(
            model=model,
            temperature=LLM_TEMPERATURE,
            messages=build_messages(headers),
            response_format={"type": "json_object"},
        )
    except OpenAIError as exc:
        logger.warning("Mapping suggestion call failed: %s", exc)
        raise MappingSuggestionError(str(exc)) from exc
    logger.info("Received mapping suggestion for %d headers", len(headers))
    return parse_reply(_reply_text(resp))
