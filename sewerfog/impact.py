"""FOG (fats, oils and grease) mass removal and Karma impact model."""

from __future__ import annotations

from dataclasses import dataclass

# 1 mg/L equals 0.001 kg/m^3.
_MG_PER_L_TO_KG_PER_M3 = 1.0e-3


@dataclass(frozen=True)
class FogNodeState:
    """Concentrations and flow observed at a node over one window."""

    cin_mg_per_l: float
    cout_mg_per_l: float
    flow_m3_per_s: float
    dt_seconds: float


@dataclass(frozen=True)
class FogImpactConfig:
    """Weighting parameters of the impact model."""

    cref_mg_per_l: float
    hazard_weight: float
    karma_per_kg: float


@dataclass(frozen=True)
class FogImpactResult:
    """FOG mass avoided, its normalised risk and the resulting Karma."""

    mass_kg: float = 0.0
    normalized_risk: float = 0.0
    karma: float = 0.0


def compute_fog_impact(state: FogNodeState, config: FogImpactConfig) -> FogImpactResult:
    """Compute M = (Cin - Cout) * Q * t and the weighted Karma for it.

    Raises ``ValueError`` if the reference concentration is not positive.
    A non-positive window, flow or concentration drop yields a zero result.
    """
    if config.cref_mg_per_l <= 0.0:
        raise ValueError("cref_mg_per_l must be positive")
    if state.dt_seconds <= 0.0 or state.flow_m3_per_s <= 0.0:
        return FogImpactResult()
    delta_mg_per_l = state.cin_mg_per_l - state.cout_mg_per_l
    if delta_mg_per_l <= 0.0:
        return FogImpactResult()

    mass_kg = (
        delta_mg_per_l * _MG_PER_L_TO_KG_PER_M3 * state.flow_m3_per_s * state.dt_seconds
    )
    normalized_risk = delta_mg_per_l / config.cref_mg_per_l
    karma = config.hazard_weight * normalized_risk * mass_kg * config.karma_per_kg
    return FogImpactResult(mass_kg=mass_kg, normalized_risk=normalized_risk, karma=karma)