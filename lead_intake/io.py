"""Input/output helpers for harvested lead captures."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .models import LeadCapture, RawToken

_JSON_SUFFIXES = {".json"}
_YAML_SUFFIXES = {".yaml", ".yml"}


def _token_from_data(value: Any) -> Optional[RawToken]:
    if value is None:
        return None
    if isinstance(value, dict):
        text = value.get("text") or value.get("token") or value.get("value")
        if not text:
            return None
        label = value.get("label")
        return (str(text), str(label)) if label else str(text)
    if isinstance(value, (list, tuple)):
        if not value or not value[0]:
            return None
        label = value[1] if len(value) > 1 else None
        return (str(value[0]), str(label)) if label else str(value[0])
    text = str(value).strip()
    return text or None


def _token_to_data(token: RawToken) -> Any:
    if isinstance(token, (tuple, list)):
        text, label = (list(token) + [None])[:2]
        return {"text": text, "label": label} if label else text
    return token


def _tokens(values: Any) -> List[RawToken]:
    if values is None:
        return []
    if isinstance(values, (str, dict)):
        values = [values]
    tokens: List[RawToken] = []
    for value in values:
        token = _token_from_data(value)
        if token is not None:
            tokens.append(token)
    return tokens


def _capture_from_data(row: Dict[str, Any]) -> LeadCapture:
    blocks = row.get("policy_blocks") or []
    if isinstance(blocks, str):
        blocks = [blocks]
    return LeadCapture(
        primary_name=str(row.get("primary_name") or row.get("name") or "").strip(),
        primary_tokens=_tokens(row.get("primary_tokens")),
        extra_tokens=_tokens(row.get("extra_tokens")),
        policy_blocks=[str(block) for block in blocks if block],
        metadata=dict(row.get("metadata") or {}),
    )


def _read_data(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in _JSON_SUFFIXES:
        return json.loads(text)
    if suffix in _YAML_SUFFIXES:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - dependency optional
            raise RuntimeError("Reading YAML captures requires the 'pyyaml' package") from exc
        return yaml.safe_load(text)
    raise ValueError(f"Unsupported capture format '{path.suffix}'. Use JSON or YAML")


def load_captures(path: str | Path) -> List[LeadCapture]:
    """Load lead captures from ``{"leads": [...]}`` or a bare list of leads."""

    file_path = Path(path)
    data = _read_data(file_path)
    if isinstance(data, dict):
        data = data.get("leads", [])
    if not isinstance(data, list):
        raise ValueError(f"Capture file '{file_path}' must contain a list of leads")
    return [_capture_from_data(row) for row in data if isinstance(row, dict)]


def captures_to_data(captures: Iterable[LeadCapture]) -> Dict[str, List[Dict[str, Any]]]:
    leads = []
    for capture in captures:
        leads.append(
            {
                "primary_name": capture.primary_name,
                "primary_tokens": [_token_to_data(token) for token in capture.primary_tokens],
                "extra_tokens": [_token_to_data(token) for token in capture.extra_tokens],
                "policy_blocks": list(capture.policy_blocks),
                "metadata": capture.metadata,
            }
        )
    return {"leads": leads}


def write_captures(path: str | Path, captures: Iterable[LeadCapture]) -> Path:
    """Persist captures as JSON so that a run can be summarized again later."""

    file_path = Path(path)
    if file_path.suffix.lower() not in _JSON_SUFFIXES:
        raise ValueError(f"Unsupported capture format '{file_path.suffix}'. Use JSON")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(
        json.dumps(captures_to_data(captures), ensure_ascii=False, indent=2, default=str),
        encoding="utf-8",
    )
    return file_path


__all__ = ["captures_to_data", "load_captures", "write_captures"]
