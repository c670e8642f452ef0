"""Heuristic health-risk estimate blended with an age-group reference rate.

The estimate is a fixed multiplicative heuristic over six personal metrics,
averaged with the published percentage of the closest age bracket in the
reference table. It is a marketing illustration, not a clinical model.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from careplan.exceptions import InvalidInputError, NoReferenceDataError
from careplan.services import reference_data
from careplan.services.reference_data import (
    ELIGIBLE_CATEGORY,
    ELIGIBLE_YEAR,
    ReferenceRow,
    ReferenceTable,
    filter_eligible,
)

logger = logging.getLogger("careplan.estimator")

BASE_RISK = 0.05

YOUNG_AGE = 35
SENIOR_AGE = 65
BMI_LIMIT = 30
BLOOD_PRESSURE_LIMIT = 130
CHOLESTEROL_LIMIT = 200

LOW_RISK_CEILING = 0.10
MODERATE_RISK_CEILING = 0.30

BMI_ADVICE = "Consider dietary changes and regular exercise to manage weight"
BLOOD_PRESSURE_ADVICE = "Monitor blood pressure regularly and consult healthcare provider"
CHOLESTEROL_ADVICE = "Consider dietary changes to reduce cholesterol levels"
SMOKING_ADVICE = "Consider smoking cessation programs for better health"
ACTIVITY_ADVICE = "Increase physical activity levels gradually"

_TRUE_STRINGS = frozenset({"1", "true", "yes"})
_FALSE_STRINGS = frozenset({"0", "false", "no"})


class RiskLevel(str, enum.Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


def _number(field: str, value: Any) -> float:
    if value is None:
        raise InvalidInputError(field, "is required")
    if isinstance(value, bool):
        raise InvalidInputError(field, "must be a number, not a boolean")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise InvalidInputError(field, f"must be a number, got {value!r}") from None
    elif not isinstance(value, (int, float)):
        raise InvalidInputError(field, f"must be a number, got {type(value).__name__}")

    try:
        number = float(value)
    except OverflowError:
        raise InvalidInputError(field, "is out of range") from None
    if not math.isfinite(number):
        raise InvalidInputError(field, "must be a finite number")
    return number


def _positive(field: str, value: Any) -> float:
    number = _number(field, value)
    if number <= 0:
        raise InvalidInputError(field, "must be greater than zero")
    return number


def _age(value: Any) -> int:
    number = _number("age", value)
    if not number.is_integer():
        raise InvalidInputError("age", "must be a whole number of years")
    if number < 0:
        raise InvalidInputError("age", "must not be negative")
    return int(number)


def _flag(field: str, value: Any) -> bool:
    """Accept booleans, 0/1, or their string spellings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    if value is None:
        raise InvalidInputError(field, "is required")
    raise InvalidInputError(field, f"must be true/false or 0/1, got {value!r}")


@dataclass(frozen=True)
class RiskInput:
    age: int
    bmi: float
    blood_pressure: float
    cholesterol: float
    smoking: bool
    physical_activity: bool

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> RiskInput:
        """Validate a decoded JSON object into a :class:`RiskInput`.

        Raises :class:`InvalidInputError` naming the first bad field.
        """
        if not isinstance(payload, Mapping):
            raise InvalidInputError("body", "must be a JSON object")

        for name in (
            "age", "bmi", "blood_pressure", "cholesterol", "smoking", "physical_activity",
        ):
            if name not in payload:
                raise InvalidInputError(name, "is required")

        return cls(
            age=_age(payload["age"]),
            bmi=_positive("bmi", payload["bmi"]),
            blood_pressure=_positive("blood_pressure", payload["blood_pressure"]),
            cholesterol=_positive("cholesterol", payload["cholesterol"]),
            smoking=_flag("smoking", payload["smoking"]),
            physical_activity=_flag("physical_activity", payload["physical_activity"]),
        )


@dataclass(frozen=True)
class RiskResult:
    risk_level: RiskLevel
    probability: float
    age_group_risk: float
    base_risk: float
    recommendations: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk_level": self.risk_level.value,
            "probability": self.probability,
            "recommendations": list(self.recommendations),
            "age_group_risk": self.age_group_risk,
            "base_risk": self.base_risk,
        }


def heuristic_risk(data: RiskInput) -> float:
    """Input-only risk before blending with the reference table."""
    risk = BASE_RISK

    if data.age < YOUNG_AGE:
        risk *= 0.5
    elif data.age >= SENIOR_AGE:
        risk *= 2

    if data.bmi > BMI_LIMIT:
        risk *= 1.5
    if data.blood_pressure > BLOOD_PRESSURE_LIMIT:
        risk *= 1.3
    if data.cholesterol > CHOLESTEROL_LIMIT:
        risk *= 1.2
    if data.smoking:
        risk *= 1.8
    if not data.physical_activity:
        risk *= 1.4

    return risk


def closest_reference_row(age: int, rows: Sequence[ReferenceRow]) -> ReferenceRow:
    """Row whose lower age bound is nearest to *age*; earliest row wins ties."""
    best: ReferenceRow | None = None
    best_diff = 0
    for row in rows:
        lower = row.lower_age
        if lower is None:
            continue
        diff = abs(age - lower)
        if best is None or diff < best_diff:
            best, best_diff = row, diff

    if best is None:
        raise NoReferenceDataError(
            f"No reference rows for year {ELIGIBLE_YEAR} "
            f"and grouping category {ELIGIBLE_CATEGORY!r}"
        )
    return best


def classify(probability: float) -> RiskLevel:
    if probability < LOW_RISK_CEILING:
        return RiskLevel.LOW
    if probability < MODERATE_RISK_CEILING:
        return RiskLevel.MODERATE
    return RiskLevel.HIGH


def recommendations_for(data: RiskInput) -> list[str]:
    recommendations = []
    if data.bmi > BMI_LIMIT:
        recommendations.append(BMI_ADVICE)
    if data.blood_pressure > BLOOD_PRESSURE_LIMIT:
        recommendations.append(BLOOD_PRESSURE_ADVICE)
    if data.cholesterol > CHOLESTEROL_LIMIT:
        recommendations.append(CHOLESTEROL_ADVICE)
    if data.smoking:
        recommendations.append(SMOKING_ADVICE)
    if not data.physical_activity:
        recommendations.append(ACTIVITY_ADVICE)
    return recommendations


def estimate_risk(
    data: RiskInput | Mapping[str, Any],
    table: ReferenceTable | None = None,
    timeout: float | None = None,
) -> RiskResult:
    """Estimate risk for *data* against the reference *table*.

    *data* may be an already validated :class:`RiskInput` or a raw mapping,
    which is validated first. *table* defaults to the process-wide
    reference table; *timeout* bounds the wait for its first load.
    """
    if not isinstance(data, RiskInput):
        data = RiskInput.from_payload(data)
    if table is None:
        table = reference_data.reference_table

    rows = filter_eligible(table.ensure_loaded(timeout))
    closest = closest_reference_row(data.age, rows)

    heuristic = heuristic_risk(data)
    age_group_risk = closest.percentage / 100
    blended = (heuristic + age_group_risk) / 2
    level = classify(blended)

    logger.debug(
        "Risk estimated: %s",
        level.value,
        extra={
            "reference_group": closest.group,
            "heuristic": round(heuristic, 4),
            "blended": round(blended, 4),
        },
    )

    return RiskResult(
        risk_level=level,
        probability=blended,
        age_group_risk=closest.percentage,
        base_risk=blended,
        recommendations=tuple(recommendations_for(data)),
    )
