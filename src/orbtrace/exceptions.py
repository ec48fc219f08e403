"""Exception hierarchy for orbtrace.

Every error raised by the library derives from :class:`OrbtraceError` and
carries a short ``code`` for troubleshooting. Errors caused by bad caller
input also derive from :class:`ValueError`.
"""

from __future__ import annotations

from datetime import datetime


class OrbtraceError(Exception):
    """Base class for all orbtrace errors."""

    code: str = "ORB-1000"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class FormatError(OrbtraceError, ValueError):
    """Element text violates the two-line format contract.

    Attributes:
        line1_tokens: Whitespace token count observed on line 1, if known.
        line2_tokens: Whitespace token count observed on line 2, if known.
    """

    code = "TLE-1301"

    def __init__(
        self,
        message: str,
        *,
        line1_tokens: int | None = None,
        line2_tokens: int | None = None,
    ) -> None:
        super().__init__(message)
        self.line1_tokens = line1_tokens
        self.line2_tokens = line2_tokens


class PropagationError(OrbtraceError):
    """The propagation kernel rejected an element set or instant.

    Attributes:
        catalog_number: Catalog number of the offending element set.
        when: Requested instant, if the failure is tied to one.
        sgp4_code: Non-zero sgp4 error code, if the kernel reported one.
    """

    code = "PROP-1401"

    def __init__(
        self,
        message: str,
        *,
        catalog_number: int | None = None,
        when: datetime | None = None,
        sgp4_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.catalog_number = catalog_number
        self.when = when
        self.sgp4_code = sgp4_code


class DegenerateGeometryError(OrbtraceError, ArithmeticError):
    """Observer and satellite coincide, so look angles are undefined."""

    code = "GEOM-1501"


class InvalidRangeError(OrbtraceError, ValueError):
    """Sampling bounds or interval are unusable."""

    code = "INPUT-1203"


class InvalidObserverError(OrbtraceError, ValueError):
    """Observer coordinates are outside their valid ranges."""

    code = "INPUT-1204"
