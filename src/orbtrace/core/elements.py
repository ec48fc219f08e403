"""Two-Line Element (TLE) text parsing.

Lines are split on whitespace and each field is read from its token
position. The last token of line 2 packs the mean motion, revolution number
and checksum together and is decoded in a second, fixed-width pass.

Individual fields that fail to convert come back as ``None``; they never
abort the parse. Structural problems (wrong line prefix, too few tokens)
make the whole parse fail with a :class:`~orbtrace.exceptions.FormatError`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from orbtrace.exceptions import FormatError
from orbtrace.utils.constants import (
    EPOCH_YEAR_PIVOT,
    LINE1_MIN_TOKENS,
    LINE1_PREFIX,
    LINE2_MIN_TOKENS,
    LINE2_PREFIX,
    MEAN_MOTION_WIDTH,
    REVOLUTION_END,
    UNSPECIFIED_NAME,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrbitalElementSet:
    """Orbital elements read from a two-line element record.

    Every parsed field is optional: ``None`` means the token was missing or
    could not be converted.

    Attributes:
        name: Satellite name, or ``"UNSPECIFIED"`` when none was given.
        catalog_number: Satellite catalog number.
        classification: Classification letter (U, C or S).
        international_designator: Launch designator, e.g. ``"98067A"``.
        epoch: Epoch as written, YYDDD.DDDDDDDD.
        mean_motion_dot: First derivative of mean motion (rev/day²).
        mean_motion_ddot: Second derivative of mean motion, raw encoded text.
        bstar_drag: B* drag term, raw encoded text.
        element_set_type: Ephemeris type.
        element_number: Element set number.
        checksum_line1: Checksum digit printed on line 1.
        inclination_deg: Inclination in degrees.
        raan_deg: Right ascension of the ascending node in degrees.
        eccentricity: Eccentricity (dimensionless).
        arg_perigee_deg: Argument of perigee in degrees.
        mean_anomaly_deg: Mean anomaly in degrees.
        mean_motion: Mean motion in revolutions per day.
        revolution_number: Revolution number at epoch.
        checksum_line2: Checksum digit printed on line 2.
        line1: Raw line 1.
        line2: Raw line 2.
        valid: True when the record came from a successful parse.
    """

    name: str = UNSPECIFIED_NAME
    catalog_number: int | None = None
    classification: str | None = None
    international_designator: str | None = None
    epoch: float | None = None
    mean_motion_dot: float | None = None
    mean_motion_ddot: str | None = None
    bstar_drag: str | None = None
    element_set_type: int | None = None
    element_number: int | None = None
    checksum_line1: int | None = None
    inclination_deg: float | None = None
    raan_deg: float | None = None
    eccentricity: float | None = None
    arg_perigee_deg: float | None = None
    mean_anomaly_deg: float | None = None
    mean_motion: float | None = None
    revolution_number: int | None = None
    checksum_line2: int | None = None
    line1: str = ""
    line2: str = ""
    valid: bool = False

    @classmethod
    def empty(cls, name: str = UNSPECIFIED_NAME) -> OrbitalElementSet:
        """The record returned for a failed parse."""
        return cls(name=name or UNSPECIFIED_NAME)

    @classmethod
    def from_lines(cls, line1: str, line2: str, name: str = UNSPECIFIED_NAME) -> OrbitalElementSet:
        """Parse an element set from its two data lines.

        Args:
            line1: TLE line 1.
            line2: TLE line 2.
            name: Optional satellite name (line 0).

        Returns:
            The parsed element set.

        Raises:
            FormatError: If the lines violate the two-line format contract.
        """
        result = parse_element_set(line1, line2, name=name)
        if result.error is not None:
            logger.error("Invalid element set %r: %s", name, result.error)
            raise result.error
        return result.elements

    @property
    def looks_empty(self) -> bool:
        """Legacy failure test: catalog number, designator and epoch all absent."""
        return (
            not self.catalog_number
            and not self.international_designator
            and not self.epoch
        )

    @property
    def epoch_datetime(self) -> datetime | None:
        """Epoch as a UTC datetime, or None when the epoch is absent or out of range."""
        if self.epoch is None:
            return None
        year = int(self.epoch // 1000)
        day_of_year = self.epoch - year * 1000
        year = year + 2000 if year < EPOCH_YEAR_PIVOT else year + 1900
        try:
            return datetime(year, 1, 1, tzinfo=timezone.utc) + timedelta(days=day_of_year - 1)
        except (ValueError, OverflowError):
            return None

    @property
    def mean_motion_ddot_value(self) -> float | None:
        """Second derivative of mean motion decoded from its exponent notation."""
        return decode_implied_exponent(self.mean_motion_ddot)

    @property
    def bstar(self) -> float | None:
        """B* drag term decoded from its exponent notation."""
        return decode_implied_exponent(self.bstar_drag)

    @property
    def checksums_valid(self) -> bool:
        """True when both raw lines carry a correct trailing checksum digit."""
        return verify_checksum(self.line1) and verify_checksum(self.line2)

    def __str__(self) -> str:
        header = f"0 {self.name}\n" if self.name and self.name != UNSPECIFIED_NAME else ""
        return f"{header}{self.line1}\n{self.line2}"


@dataclass(frozen=True)
class ParseResult:
    """Outcome of :func:`parse_element_set`.

    Attributes:
        elements: The parsed record, or the empty record on failure.
        error: The format error when parsing failed.
    """

    elements: OrbitalElementSet
    error: FormatError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _to_int(token: str) -> int | None:
    if "_" in token:
        return None
    try:
        return int(token)
    except ValueError:
        return None


def _to_float(token: str) -> float | None:
    if "_" in token:
        return None
    try:
        value = float(token)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _token(tokens: list[str], index: int) -> str | None:
    return tokens[index] if index < len(tokens) else None


def _split_trailing_digit(token: str) -> tuple[int | None, int | None]:
    """Split ``"9993"`` into (999, 3). A single character is all value."""
    if len(token) > 1:
        return _to_int(token[:-1]), _to_int(token[-1])
    return _to_int(token), None


def decode_mean_motion_field(token: str) -> tuple[float | None, int | None, int | None]:
    """Decode the combined mean-motion token at the end of line 2.

    Columns 0-10 hold the mean motion and columns 11-15 the revolution
    number; the final character is the checksum. Tokens shorter than the
    mean-motion width are read as mean motion only.

    Args:
        token: The eighth whitespace token of line 2.

    Returns:
        Tuple of (mean_motion, revolution_number, checksum).
    """
    if len(token) < MEAN_MOTION_WIDTH:
        return _to_float(token), None, None

    mean_motion = _to_float(token[:MEAN_MOTION_WIDTH])
    revolution = None
    if len(token) >= REVOLUTION_END:
        revolution = _to_int(token[MEAN_MOTION_WIDTH:REVOLUTION_END])
    return mean_motion, revolution, _to_int(token[-1])


def decode_implied_exponent(text: str | None) -> float | None:
    """Decode TLE implied-decimal exponent notation.

    ``"12345-3"`` is 0.12345e-3 and ``"-11606-4"`` is -0.11606e-4.

    Args:
        text: Encoded field, optionally signed.

    Returns:
        The decoded value, or None if ``text`` is absent or malformed.
    """
    if not text:
        return None
    sign = 1.0
    body = text
    if body[0] in "+-":
        sign = -1.0 if body[0] == "-" else 1.0
        body = body[1:]

    split = max(body.rfind("-"), body.rfind("+"))
    if split <= 0:
        mantissa, exponent = body, "0"
    else:
        mantissa, exponent = body[:split], body[split:]

    if not mantissa.isdigit():
        return None
    exp = _to_int(exponent)
    if exp is None:
        return None
    return sign * float("0." + mantissa) * 10.0 ** exp


def compute_checksum(line: str) -> int:
    """Modulo-10 checksum over the first 68 columns of a TLE line.

    Digits count their value, minus signs count one, everything else zero.
    """
    total = 0
    for char in line[:68]:
        if char.isdigit():
            total += int(char)
        elif char == "-":
            total += 1
    return total % 10


def verify_checksum(line: str) -> bool:
    """True when a full-width TLE line ends with its correct checksum."""
    line = line.strip()
    if len(line) < 69 or not line[68].isdigit():
        return False
    return compute_checksum(line) == int(line[68])


def _format_error(line1: str, line2: str, tokens1: list[str], tokens2: list[str]) -> FormatError | None:
    problems = []
    if not line1.startswith(LINE1_PREFIX):
        problems.append(f"line 1 must start with {LINE1_PREFIX!r}")
    if not line2.startswith(LINE2_PREFIX):
        problems.append(f"line 2 must start with {LINE2_PREFIX!r}")
    if len(tokens1) < LINE1_MIN_TOKENS:
        problems.append(f"line 1 fields: {len(tokens1)} (minimum required: {LINE1_MIN_TOKENS})")
    if len(tokens2) < LINE2_MIN_TOKENS:
        problems.append(f"line 2 fields: {len(tokens2)} (minimum required: {LINE2_MIN_TOKENS})")
    if not problems:
        return None
    return FormatError(
        "Invalid element set: " + "; ".join(problems),
        line1_tokens=len(tokens1),
        line2_tokens=len(tokens2),
    )


def parse_element_set(line1: str, line2: str, name: str = UNSPECIFIED_NAME) -> ParseResult:
    """Parse an element set without raising.

    Args:
        line1: TLE line 1.
        line2: TLE line 2.
        name: Optional satellite name.

    Returns:
        A :class:`ParseResult`; on failure its ``elements`` is the empty
        record and ``error`` explains why.
    """
    name = name.strip() or UNSPECIFIED_NAME
    line1 = line1.strip()
    line2 = line2.strip()
    tokens1 = line1.split()
    tokens2 = line2.split()

    error = _format_error(line1, line2, tokens1, tokens2)
    if error is not None:
        logger.debug("Rejected element set %r: %s", name, error.message)
        return ParseResult(OrbitalElementSet.empty(name), error)

    catalog_number = classification = None
    token = tokens1[1]
    if len(token) > 1:
        catalog_number = _to_int(token[:-1])
        classification = token[-1]
    else:
        catalog_number = _to_int(token)

    mean_motion_dot = None
    if len(tokens1) > 4:
        mean_motion_dot = _to_float(tokens1[4])
    mean_motion_ddot = _token(tokens1, 5)
    bstar_drag = _token(tokens1, 6)
    element_set_type = None
    if len(tokens1) > 7:
        element_set_type = _to_int(tokens1[7])
    element_number = checksum_line1 = None
    if len(tokens1) > 8:
        element_number, checksum_line1 = _split_trailing_digit(tokens1[8])

    line2_catalog = _to_int(tokens2[1])
    if catalog_number is not None and line2_catalog != catalog_number:
        logger.debug(
            "Catalog number differs between lines (%s vs %s); using line 2",
            catalog_number,
            line2_catalog,
        )
    catalog_number = line2_catalog

    def _float_at(index: int, prefix: str = "") -> float | None:
        token = _token(tokens2, index)
        return None if token is None else _to_float(prefix + token)

    mean_motion = revolution_number = checksum_line2 = None
    if len(tokens2) > 7:
        mean_motion, revolution_number, checksum_line2 = decode_mean_motion_field(tokens2[7])

    elements = OrbitalElementSet(
        name=name,
        catalog_number=catalog_number,
        classification=classification,
        international_designator=tokens1[2],
        epoch=_to_float(tokens1[3]),
        mean_motion_dot=mean_motion_dot,
        mean_motion_ddot=mean_motion_ddot,
        bstar_drag=bstar_drag,
        element_set_type=element_set_type,
        element_number=element_number,
        checksum_line1=checksum_line1,
        inclination_deg=_float_at(2),
        raan_deg=_float_at(3),
        eccentricity=_float_at(4, prefix="0."),
        arg_perigee_deg=_float_at(5),
        mean_anomaly_deg=_float_at(6),
        mean_motion=mean_motion,
        revolution_number=revolution_number,
        checksum_line2=checksum_line2,
        line1=line1,
        line2=line2,
        valid=True,
    )
    logger.debug("Parsed element set for catalog %s (%s)", catalog_number, name)
    return ParseResult(elements)


def _strip_name(line: str) -> str:
    # 3LE files from Space-Track prefix the name line with "0 "
    line = line.strip()
    if line.startswith("0 "):
        line = line[2:].strip()
    return line or UNSPECIFIED_NAME


def split_element_text(text: str) -> tuple[str, str, str]:
    """Split a single 2-line or 3-line element block.

    Args:
        text: Element text; blank lines are ignored.

    Returns:
        Tuple of (name, line1, line2). ``name`` is ``"UNSPECIFIED"`` for a
        2-line block.

    Raises:
        FormatError: If the block does not have exactly 2 or 3 lines.
    """
    lines = [l.strip() for l in text.strip().splitlines() if l.strip()]
    if len(lines) == 3:
        return _strip_name(lines[0]), lines[1], lines[2]
    if len(lines) == 2:
        return UNSPECIFIED_NAME, lines[0], lines[1]
    raise FormatError(f"Element text must contain 2 or 3 lines, found {len(lines)}")


def parse_tle(text: str) -> list[OrbitalElementSet]:
    """Parse one or more element sets from text.

    Handles both 2-line and 3-line (with name) records. Unrecognised lines
    and records that fail the format contract are skipped.

    Args:
        text: Raw TLE text, one or more records separated by newlines.

    Returns:
        A list of parsed element sets.
    """
    lines = [l.rstrip() for l in text.strip().splitlines() if l.strip()]
    records: list[tuple[str, str, str]] = []
    i = 0

    while i < len(lines):
        if lines[i].startswith(LINE1_PREFIX) and i + 1 < len(lines) and lines[i + 1].startswith(LINE2_PREFIX):
            records.append((UNSPECIFIED_NAME, lines[i], lines[i + 1]))
            i += 2
        elif (
            not lines[i].startswith(LINE1_PREFIX)
            and not lines[i].startswith(LINE2_PREFIX)
            and i + 2 < len(lines)
            and lines[i + 1].startswith(LINE1_PREFIX)
            and lines[i + 2].startswith(LINE2_PREFIX)
        ):
            records.append((_strip_name(lines[i]), lines[i + 1], lines[i + 2]))
            i += 3
        else:
            i += 1  # skip unrecognized lines

    parsed: list[OrbitalElementSet] = []
    for name, line1, line2 in records:
        result = parse_element_set(line1, line2, name=name)
        if not result.ok:
            logger.warning("Skipping element set %r: %s", name, result.error)
            continue
        parsed.append(result.elements)

    logger.debug("Parsed %d element sets from text", len(parsed))
    return parsed
