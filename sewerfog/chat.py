"""Plain-language reach status summaries for chat integrations."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ReachStatus:
    """Current state of one sewer reach."""

    reach_id: str
    risk_score: float
    daily_karma: float = 0.0
    delta_karma_24h: float = 0.0
    top_basins: list[str] = field(default_factory=list)


def _risk_band(risk: float) -> str:
    if risk < 0.2:
        return "low-risk band"
    if risk < 0.5:
        return "moderate-risk band"
    if risk < 0.8:
        return "high-risk band"
    return "very high-risk band"


def make_reach_summary(status: ReachStatus) -> str:
    """Describe the reach's risk band, Karma and flagged basins."""
    risk = status.risk_score
    sign = "+" if status.delta_karma_24h >= 0.0 else ""
    parts = [
        f"Reach {status.reach_id} is currently in the {_risk_band(risk)} with an estimated "
        f"{risk * 100.0:.0f}% overflow probability over the next few hours. ",
        f"Daily Karma for FOG reduction is approximately {status.daily_karma:.1f} units, "
        f"with a 24-hour change of {sign}{status.delta_karma_24h:.1f} units. ",
    ]
    if status.top_basins:
        parts.append(f"Top suspected FOG contributors are: {', '.join(status.top_basins)}.")
    else:
        parts.append("No specific upstream FOG basins have been flagged in the current window.")
    return "".join(parts)


def format_chat_summary(status: ReachStatus) -> str:
    """Describe the reach in a coarse HIGH/MEDIUM/LOW overflow band."""
    risk = status.risk_score
    if risk >= 0.8:
        band = "HIGH"
    elif risk >= 0.4:
        band = "MEDIUM"
    else:
        band = "LOW"
    text = (
        f"Reach {status.reach_id} is currently in {band} overflow risk band "
        f"(probability {risk:f} over the next few hours). "
        f"Recent Karma change is {status.delta_karma_24h:f} units per day, "
        "reflecting FOG mass trends. "
    )
    if status.top_basins:
        text += f"Top suspected high-FOG basins: {', '.join(status.top_basins)}."
    return text