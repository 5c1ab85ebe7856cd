"""
Pytest configuration and shared fixtures for testing.
"""
import sys
from pathlib import Path

# Add project root to path so libs/ is importable (matches CI PYTHONPATH config)
# This must happen before importing from psyche/ which imports from libs/
project_root = Path(__file__).parent.parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Any, Callable, Dict, List, Optional  # noqa: E402

import pytest  # noqa: E402

from psyche.core.intelligence._types import Response  # noqa: E402
from psyche.core.intelligence.simulation import generate_item_bank  # noqa: E402
from psyche.schemas.items import Item  # noqa: E402

# Fixed clock for deterministic response timestamps
BASE_TIME = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def build_item(item_id: str = "ITEM_1", **overrides: Any) -> Item:
    """Build an Item with sensible defaults; overrides use snake_case names."""
    data: Dict[str, Any] = {
        "item_id": item_id,
        "text": "I enjoy meeting new people.",
        "category": "personality",
        "trait": "extraversion",
        "assessment_tiers": ["core"],
    }
    data.update(overrides)
    return Item.model_validate(data)


@pytest.fixture
def make_item() -> Callable[..., Item]:
    """Factory fixture for Item models."""
    return build_item


@pytest.fixture
def make_response() -> Callable[..., Response]:
    """
    Factory fixture for Response records.

    Accepts an Item or Item overrides, plus the answer value and latency.
    Timestamps advance one minute per call within a test.
    """
    counter = {"n": 0}

    def _make(
        item: Optional[Item] = None,
        value: int = 3,
        response_time_ms: Optional[float] = 3000.0,
        **item_overrides: Any,
    ) -> Response:
        if item is None:
            item = build_item(**item_overrides)
        counter["n"] += 1
        return Response.from_item(
            item,
            value,
            response_time_ms=response_time_ms,
            timestamp=BASE_TIME + timedelta(minutes=counter["n"]),
        )

    return _make


@pytest.fixture
def trait_history(make_response) -> Callable[..., List[Response]]:
    """Factory for a run of answers to distinct items measuring one trait."""

    def _make(
        trait: str,
        values: List[int],
        reverse_scored: bool = False,
        prefix: Optional[str] = None,
        **item_overrides: Any,
    ) -> List[Response]:
        prefix = prefix or trait.upper()
        return [
            make_response(
                value=value,
                item_id=f"{prefix}_{i}",
                trait=trait,
                reverse_scored=reverse_scored,
                **item_overrides,
            )
            for i, value in enumerate(values)
        ]

    return _make


@pytest.fixture(scope="session")
def item_bank() -> List[Item]:
    """Synthetic bank covering every trait (6 items per trait)."""
    return generate_item_bank(n_items_per_trait=6, seed=42)
