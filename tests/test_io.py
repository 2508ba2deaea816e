from __future__ import annotations

import json

import pytest

from lead_intake.io import load_captures, write_captures
from lead_intake.models import LeadCapture


def test_load_captures_from_json(tmp_path) -> None:
    path = tmp_path / "captures.json"
    path.write_text(
        json.dumps(
            {
                "leads": [
                    {
                        "primary_name": "DOE, JANE",
                        "primary_tokens": ["(614) 555-1212", {"text": "614-555-4000", "label": "Cell"}],
                        "extra_tokens": [["614-555-9999", "Fax"], None, ""],
                        "policy_blocks": "Stage: Issued Special 10",
                        "metadata": {"url": "https://crm.example.com/lead/1"},
                    },
                    {"name": "Roe, Rick"},
                    "not a lead",
                ]
            }
        ),
        encoding="utf-8",
    )

    captures = load_captures(path)

    assert len(captures) == 2
    first, second = captures
    assert first.primary_name == "DOE, JANE"
    assert first.primary_tokens == ["(614) 555-1212", ("614-555-4000", "Cell")]
    assert first.extra_tokens == [("614-555-9999", "Fax")]
    assert first.policy_blocks == ["Stage: Issued Special 10"]
    assert first.metadata == {"url": "https://crm.example.com/lead/1"}
    assert second.primary_name == "Roe, Rick"
    assert second.primary_tokens == []


def test_load_captures_from_yaml_list(tmp_path) -> None:
    path = tmp_path / "captures.yaml"
    path.write_text(
        "- primary_name: Doe, Jane\n"
        "  primary_tokens: ['614-555-1212']\n"
        "  policy_blocks:\n"
        "    - 'Stage: Issued Special 10'\n",
        encoding="utf-8",
    )

    captures = load_captures(path)

    assert captures == [
        LeadCapture(
            primary_name="Doe, Jane",
            primary_tokens=["614-555-1212"],
            policy_blocks=["Stage: Issued Special 10"],
        )
    ]


def test_load_captures_rejects_unsupported_shapes(tmp_path) -> None:
    scalar = tmp_path / "scalar.json"
    scalar.write_text('"just text"', encoding="utf-8")
    text_file = tmp_path / "captures.txt"
    text_file.write_text("[]", encoding="utf-8")

    with pytest.raises(ValueError):
        load_captures(scalar)
    with pytest.raises(ValueError):
        load_captures(text_file)


def test_written_captures_can_be_loaded_again(tmp_path) -> None:
    capture = LeadCapture(
        primary_name="Doe, Jane",
        primary_tokens=[("(614) 555-1212", "ClickToCall")],
        extra_tokens=["614-555-4000"],
        policy_blocks=["Stage: Issued Special 10"],
        metadata={"url": "https://crm.example.com/lead/1"},
    )

    path = write_captures(tmp_path / "out" / "captures.json", [capture])

    assert load_captures(path) == [capture]
    with pytest.raises(ValueError):
        write_captures(tmp_path / "captures.yaml", [capture])
