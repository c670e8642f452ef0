"""Error taxonomy for risk estimation and the static data loaders."""

from __future__ import annotations


class RiskEstimationError(Exception):
    """Base exception for everything the estimator can raise."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class InvalidInputError(RiskEstimationError):
    """Caller input is missing, non-numeric, or out of range."""

    def __init__(self, field: str, detail: str) -> None:
        self.field = field
        super().__init__(f"{field}: {detail}")


class DataLoadError(RiskEstimationError):
    """The reference dataset could not be read or parsed."""


class NoReferenceDataError(RiskEstimationError):
    """No reference row passed the eligibility filter."""


class ClinicDataError(Exception):
    """The clinic directory file could not be read or is malformed."""
