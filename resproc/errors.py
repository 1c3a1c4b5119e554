from __future__ import annotations
from typing import Optional


class ResprocError(ValueError):
    """Base class for data-reduction failures.

    Carries the run number, condition id and failing formula when known so a
    skipped record can be traced back to its input.
    """

    def __init__(
        self,
        message: str,
        *,
        run: Optional[int] = None,
        condition: Optional[int] = None,
        formula: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.run = run
        self.condition = condition
        self.formula = formula

    def context(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "run": self.run,
            "condition": self.condition,
            "formula": self.formula,
        }

    def with_context(self, *, run=None, condition=None, formula=None):
        """Fill in identifiers the raising code did not know about."""
        if self.run is None:
            self.run = run
        if self.condition is None:
            self.condition = condition
        if self.formula is None:
            self.formula = formula
        return self

    def __str__(self) -> str:
        parts = []
        if self.run is not None:
            parts.append(f"run={self.run}")
        if self.condition is not None:
            parts.append(f"condition={self.condition}")
        if self.formula:
            parts.append(f"formula={self.formula}")
        if not parts:
            return self.message
        return f"{self.message} [{', '.join(parts)}]"


class RunDataError(ResprocError):
    """Malformed channel arrays for a single run."""


class MissingInputData(ResprocError):
    """A required base table or run file is absent; aborts the stage."""


class UnsupportedRegime(ResprocError):
    """No branch of a regime-selected formula or lookup matches the input."""


class DegenerateSample(ResprocError):
    """Statistics requested over fewer than two samples."""


class NumericDomainError(ResprocError):
    """A logarithm or division received a non-positive or zero argument."""
