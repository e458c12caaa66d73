# config.py  - economy parameters, fixed field sizes, and override parsing
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Dict, Iterable, Mapping, Optional

# ─────────────────────────────────────────────────────────────────────────────
# RNG
# ─────────────────────────────────────────────────────────────────────────────
RNG_SEED: int = 42


# ─────────────────────────────────────────────────────────────────────────────
# Fee / bonus parameters
# ─────────────────────────────────────────────────────────────────────────────
# z_* = fee divisor (fee = current chips / z), y_* = fixed bonus per eligible rank
@dataclass(frozen=True)
class EconomyParams:
    x0: float = 100.0

    # Legacy flow: 3x Cup -> Regionals (32) -> Worlds (48)
    z_cup: float = 8.0
    y_cup: float = 50.0
    z_reg: float = 4.0
    y_reg: float = 100.0
    z_world: float = 3.0
    y_world: float = 400.0

    # Extended (pro circuit) flow: 3x TPC -> 2x non-pro Cup -> Regionals (48)
    z_tpc: float = 5.0
    y_tpc: float = 75.0
    z_ext_cup: float = 10.0
    y_ext_cup: float = 20.0
    ext_cup_top_k: Optional[int] = 32   # None -> top half
    z_ext_reg: float = 4.0
    y_ext_reg: float = 90.0

    decay_pct: float = 33.0

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name.startswith("z_") and not value > 0:
                raise ValueError(f"Fee divisor {f.name} must be > 0, got {value}")
            if f.name.startswith("y_") and value < 0:
                raise ValueError(f"Fixed bonus {f.name} must be >= 0, got {value}")
        if self.x0 < 0:
            raise ValueError(f"Initial balance x0 must be >= 0, got {self.x0}")
        if self.ext_cup_top_k is not None and (
            int(self.ext_cup_top_k) != self.ext_cup_top_k or self.ext_cup_top_k < 1
        ):
            raise ValueError(
                f"ext_cup_top_k must be a positive integer or None, got {self.ext_cup_top_k}"
            )

    @property
    def decay_factor(self) -> float:
        return 1.0 - clamp_pct(self.decay_pct) / 100.0

    def with_overrides(self, **overrides) -> "EconomyParams":
        """Copy with some parameters replaced (validated again)."""
        _check_keys(overrides, self)
        return replace(self, **overrides)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, object]) -> "EconomyParams":
        _check_keys(mapping, cls)
        return cls(**dict(mapping))

    def to_dict(self) -> Dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# ─────────────────────────────────────────────────────────────────────────────
# Field sizes
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class FieldSizes:
    population: int = 256
    cup_slots: int = 128
    reg: int = 32
    world: int = 48
    world_quota: int = 12          # our region's qualifiers into Worlds
    tpc: int = 32                  # pro circuit field
    ext_reg: int = 48              # pros + open qualifiers
    ext_reg_open_slots: int = 16   # non-pros admitted to the 48-field Regional
    external_skill_spread: float = 0.8

    def __post_init__(self):
        for f in fields(self):
            if getattr(self, f.name) <= 0:
                raise ValueError(f"Field size {f.name} must be positive")
        if self.cup_slots > self.population:
            raise ValueError("cup_slots cannot exceed population")
        if self.reg > self.population or self.tpc > self.population:
            raise ValueError("Regional / pro fields cannot exceed population")
        if self.world_quota > min(self.world, self.reg):
            raise ValueError("world_quota must fit inside both Worlds and Regionals")
        if self.reg != self.tpc:
            raise ValueError("tpc must equal reg: the pros are the Regional field")
        if self.ext_reg != self.tpc + self.ext_reg_open_slots:
            raise ValueError("ext_reg must equal tpc + ext_reg_open_slots")
        if self.ext_reg > self.population:
            raise ValueError("ext_reg cannot exceed population")


DEFAULT_PARAMS = EconomyParams()
FIXED_SIZES = FieldSizes()


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────
def clamp_pct(pct: float) -> float:
    """Clamp a percentage into [0, 100]; NaN/None count as 0."""
    try:
        pct = float(pct)
    except (TypeError, ValueError):
        return 0.0
    if pct != pct:
        return 0.0
    return max(0.0, min(100.0, pct))


def _check_keys(mapping: Mapping[str, object], target) -> None:
    known = {f.name for f in fields(target)}
    unknown = set(mapping) - known
    if unknown:
        raise ValueError(f"Unknown economy parameters: {sorted(unknown)}")


def _coerce(name: str, raw: str):
    if name == "ext_cup_top_k":
        if raw.strip().lower() in ("none", "half", ""):
            return None
        return int(raw)
    return float(raw)


def parse_overrides(pairs: Iterable[str]) -> Dict[str, object]:
    """
    Turn ["z_cup=10", "y_world=500"] into {"z_cup": 10.0, "y_world": 500.0}.

    Keys are checked against EconomyParams; values are typed per field.
    """
    out: Dict[str, object] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Override must look like KEY=VALUE, got {pair!r}")
        key, raw = pair.split("=", 1)
        key = key.strip()
        _check_keys({key: None}, EconomyParams)
        try:
            out[key] = _coerce(key, raw)
        except ValueError:
            raise ValueError(f"Bad value for {key}: {raw!r}") from None
    return out


__all__ = [
    "RNG_SEED",
    "EconomyParams", "FieldSizes",
    "DEFAULT_PARAMS", "FIXED_SIZES",
    "clamp_pct", "parse_overrides",
]
