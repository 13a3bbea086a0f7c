"""Deterministic fallback UI used when no attempt is accepted."""

from typing import Any


FALLBACK_DETAILS = [
    {"id": "d1", "text": "Stable fallback output"},
    {"id": "d2", "text": "Validated component graph"},
]
SUMMARY_LIMIT = 120
EMPTY_SUMMARY = "Fallback snapshot."


def build_fallback_snapshot(prompt: str) -> dict[str, Any]:
    """
    Card snapshot derived only from the prompt text.

    The same prompt always yields the same snapshot, and the snapshot must
    pass validation against the default catalog.
    """
    title = "Pricing Card" if "pricing" in prompt else "Generated UI"
    summary = " ".join(prompt.split())[:SUMMARY_LIMIT] or EMPTY_SUMMARY

    return {
        "state": {"details": [dict(detail) for detail in FALLBACK_DETAILS]},
        "tree": {
            "id": "root",
            "type": "Card",
            "children": [
                {
                    "id": "header",
                    "type": "CardHeader",
                    "children": [
                        {"id": "title", "type": "CardTitle", "children": [title]},
                        {"id": "description", "type": "CardDescription", "children": [summary]},
                    ],
                },
                {
                    "id": "content",
                    "type": "CardContent",
                    "children": [
                        {
                            "id": "items",
                            "type": "Stack",
                            "repeat": {"statePath": "/details", "key": "id"},
                            "children": [
                                {
                                    "id": "item-text",
                                    "type": "Text",
                                    "props": {"text": {"$item": "text"}},
                                    "children": [],
                                }
                            ],
                        },
                        {"id": "cta", "type": "Button", "children": ["Continue"]},
                    ],
                },
            ],
        },
    }
