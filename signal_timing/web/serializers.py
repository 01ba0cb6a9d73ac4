"""
Serializers for converting pipeline state deltas into JSON-safe dicts for SSE.
"""

from __future__ import annotations

from typing import Any


def serialize_state_update(
    node_name: str,
    state_delta: dict[str, Any],
    meta: dict[str, Any],
) -> dict[str, Any]:
    """Convert a LangGraph state delta into a JSON-serializable dict for SSE.

    Args:
        node_name: The graph node that just completed (e.g. "compute_signals").
        state_delta: The partial state dict returned by that node.
        meta: Display metadata: label, stage number, total stages.

    Returns:
        A plain dict safe for ``json.dumps``.
    """
    result: dict[str, Any] = {
        "node": node_name,
        "label": meta.get("label", node_name),
        "stage": meta.get("stage", 0),
        "total_stages": meta.get("total", 4),
    }

    if "ticker" in state_delta:
        result["ticker"] = state_delta["ticker"]

    # Price bars for chart rendering (~20KB for a year of daily bars).
    if "prices" in state_delta:
        result["priceHistory"] = [
            p.model_dump(mode="json") for p in state_delta["prices"]
        ]

    if "selection" in state_delta:
        selection = state_delta["selection"]
        result.update(selection.model_dump(mode="json", by_alias=True))

    # Raw events are only counted; the consolidated timeline follows.
    if "raw_signals" in state_delta:
        result["rawSignalCount"] = len(state_delta["raw_signals"])

    if "timeline" in state_delta:
        result["consolidatedTimeline"] = [
            e.model_dump(mode="json") for e in state_delta["timeline"]
        ]

    return result
