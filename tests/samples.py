"""Sample documents shared by the test modules."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

NOW = datetime(2026, 10, 18, 10, 15, tzinfo=UTC)

S500_TITLE = "Russia deploys S-500 air defense systems near Ukraine border"

_S500_PARAGRAPH = (
    "Russia deploys S-500 air defense systems near the Ukraine border, according to officials "
    "confirmed by Reuters on 2026-10-18 at 09:30 UTC. "
    "The deployment covers 400 km of frontier close to Belarus, with 12 launchers and 3 radar units. "
    "However, analysis shows the move is part of a broader military strategy and long-term "
    "modernization program. "
    "Officials confirmed the readiness of the units and described the operation as a response "
    "to NATO surveillance. "
    '"The systems are on combat duty now," a defense ministry official said in an official statement. '
    "Satellite images obtained by analysts revealed the mission area. "
    "Furthermore, the assessment indicates the regional balance of power may shift as international "
    "observers plan next steps on global security policy."
)

S500_BODY = "\n\n".join([_S500_PARAGRAPH] * 8)


def s500_record(**overrides: Any) -> dict[str, Any]:
    """Tier-1 wire report, 45 minutes old, about a Russian air-defense deployment."""
    record: dict[str, Any] = {
        "id": "s500",
        "title": S500_TITLE,
        "content": S500_BODY,
        "url": "https://www.reuters.com/world/europe/russia-s500-ukraine-border",
        "publishedAt": (NOW - timedelta(minutes=45)).isoformat(),
        "source": {"domain": "reuters.com", "name": "Reuters", "credibilityScore": 95},
        "intelligence": {
            "relevanceScore": 85,
            "confidence": 80,
            "priority": "HIGH",
            "entities": {"countries": ["Russia", "Ukraine", "Belarus"]},
            "strategicImplications": "Significant shift in regional air defense posture",
        },
    }
    record.update(overrides)
    return record
