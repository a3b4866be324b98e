# tabular_bench/tuning/search_space.py
"""Search space definitions for hyperparameter tuning."""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from ..utils.exceptions import ConfigurationError


@dataclass
class ParamInt:
    lower: int
    upper: int
    log: bool = False

    def __post_init__(self) -> None:
        if self.lower > self.upper:
            raise ConfigurationError(
                f"Lower bound {self.lower} exceeds upper bound {self.upper}",
                error_code="INVALID_SEARCH_SPACE"
            )

    def suggest(self, trial: Any, name: str) -> int:
        return trial.suggest_int(name, int(self.lower), int(self.upper), log=self.log)


@dataclass
class ParamDbl:
    lower: float
    upper: float
    log: bool = False

    def __post_init__(self) -> None:
        if self.lower > self.upper:
            raise ConfigurationError(
                f"Lower bound {self.lower} exceeds upper bound {self.upper}",
                error_code="INVALID_SEARCH_SPACE"
            )
        if self.log and self.lower <= 0:
            raise ConfigurationError(
                "Log-scaled ranges need a positive lower bound",
                error_code="INVALID_SEARCH_SPACE"
            )

    def suggest(self, trial: Any, name: str) -> float:
        return trial.suggest_float(name, float(self.lower), float(self.upper), log=self.log)


@dataclass
class ParamFct:
    levels: List[Any]

    def __post_init__(self) -> None:
        if not self.levels:
            raise ConfigurationError("A factor range needs at least one level", error_code="INVALID_SEARCH_SPACE")

    def suggest(self, trial: Any, name: str) -> Any:
        return trial.suggest_categorical(name, list(self.levels))


def p_int(lower: int, upper: int, log: bool = False) -> ParamInt:
    return ParamInt(lower, upper, log)


def p_dbl(lower: float, upper: float, log: bool = False) -> ParamDbl:
    return ParamDbl(lower, upper, log)


def p_fct(levels: Sequence[Any]) -> ParamFct:
    return ParamFct(list(levels))


def search_space_from_dict(spec: Dict[str, Any]) -> Dict[str, Any]:
    """Build a search space from plain data, as found in YAML configs.

    Each entry is ``{"type": "int"|"dbl"|"fct", ...}`` with ``lower``/``upper``
    (and optional ``log``) for ranges or ``levels`` for factors.

    Example:
        >>> search_space_from_dict({"cp": {"type": "dbl", "lower": 0.001, "upper": 0.1, "log": True}})
    """
    space = {}
    for name, entry in spec.items():
        kind = entry.get("type")
        if kind == "int":
            space[name] = p_int(entry["lower"], entry["upper"], entry.get("log", False))
        elif kind == "dbl":
            space[name] = p_dbl(entry["lower"], entry["upper"], entry.get("log", False))
        elif kind == "fct":
            space[name] = p_fct(entry["levels"])
        else:
            raise ConfigurationError(
                f"Unknown range type '{kind}' for parameter '{name}'; use int, dbl or fct",
                error_code="INVALID_SEARCH_SPACE"
            )
    return space
