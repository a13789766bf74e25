"""Plus Code (Open Location Code) encoding, decoding, shortening and recovery.

This module provides:
- Encoding of latitude/longitude into full Plus Codes of 2 to 15 digits
- Decoding of full codes into a CodeArea bounding box
- Validation of codes as valid, short or full
- Shortening of full codes relative to a reference location
- Recovery of full codes from short codes and a reference location

Codes are built from five latitude/longitude digit pairs in base 20, followed
by up to five digits that each refine the area on a 5 row x 4 column grid.
A separator follows the eighth digit; codes shorter than eight digits are
padded up to the separator.

Plus Code Precision Reference (cell size at the equator):
    Length  Height      Width       Example
    2       2,200km     2,200km     8F000000+
    4       110km       110km       8FVC0000+
    6       5.5km       5.5km       8FVC9G00+
    8       275m        275m        8FVC9G8F+
    10      14m         14m         8FVC9G8F+6X
    11      2.8m        3.5m        8FVC9G8F+6XQ
    12      56cm        87cm        8FVC9G8F+6XQQ
    13      11cm        22cm
    14      2.2cm       5.4cm
    15      4.4mm       1.4cm
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Tuple

logger = logging.getLogger(__name__)

# Constants -------------------------------------------------------------------
SEPARATOR = "+"
SEPARATOR_POSITION = 8
PADDING_CHARACTER = "0"

CODE_ALPHABET = "23456789CFGHJMPQRVWX"
CODE_DECODE_MAP = {char: index for index, char in enumerate(CODE_ALPHABET)}
ENCODING_BASE = len(CODE_ALPHABET)
VALID_CHARACTERS = frozenset(CODE_ALPHABET + SEPARATOR + PADDING_CHARACTER)

LATITUDE_MAX = 90
LONGITUDE_MAX = 180

MIN_DIGIT_COUNT = 2
MAX_DIGIT_COUNT = 15

# Digits encoded as latitude/longitude pairs; the rest use the grid.
PAIR_CODE_LENGTH = 10
PAIR_FIRST_PLACE_VALUE = ENCODING_BASE ** (PAIR_CODE_LENGTH // 2 - 1)
PAIR_PRECISION = ENCODING_BASE ** 3
PAIR_RESOLUTIONS = (20.0, 1.0, 0.05, 0.0025, 0.000125)

GRID_CODE_LENGTH = MAX_DIGIT_COUNT - PAIR_CODE_LENGTH
GRID_COLUMNS = 4
GRID_ROWS = 5
GRID_LAT_FIRST_PLACE_VALUE = GRID_ROWS ** (GRID_CODE_LENGTH - 1)
GRID_LNG_FIRST_PLACE_VALUE = GRID_COLUMNS ** (GRID_CODE_LENGTH - 1)

# Multipliers that make each coordinate an integer count of the finest cell.
FINAL_LAT_PRECISION = PAIR_PRECISION * GRID_ROWS ** GRID_CODE_LENGTH
FINAL_LNG_PRECISION = PAIR_PRECISION * GRID_COLUMNS ** GRID_CODE_LENGTH

MIN_TRIMMABLE_CODE_LEN = 6
# Fraction of a cell's resolution the reference point may be from its center.
SHORTEN_RANGE_FACTOR = 0.3

# Type Aliases ----------------------------------------------------------------
LatLng = Tuple[float, float]
LngLat = Tuple[float, float]
BBox = Tuple[float, float, float, float]  # (min_lng, min_lat, max_lng, max_lat)
Polygon = List[LngLat]


# Custom Exceptions -----------------------------------------------------------
class PlusCodeError(ValueError):
    """Base exception for Plus Code operations."""

    reason = "plus_code_error"


class InvalidCodeError(PlusCodeError):
    """Raised when a code is not a valid Plus Code."""

    reason = "invalid_code"


class FullCodeExpectedError(PlusCodeError):
    """Raised when a short code is given where a full code is required."""

    reason = "full_code_expected"


class CannotShortenPaddedCodesError(PlusCodeError):
    """Raised when shortening a code that contains padding."""

    reason = "cannot_shorten_padded_codes"


class CodeLengthTooSmallError(PlusCodeError):
    """Raised when a code has too few digits to be shortened."""

    reason = "code_length_too_small"


class InvalidCodeLengthError(PlusCodeError):
    """Raised when a code length cannot be encoded."""

    reason = "invalid_code_length"


# Dataclass -------------------------------------------------------------------
@dataclass(frozen=True)
class CodeArea:
    """Bounding box of a decoded Plus Code.

    Attributes:
        lat_lo: Latitude of the south edge in degrees
        lng_lo: Longitude of the west edge in degrees
        lat_hi: Latitude of the north edge in degrees
        lng_hi: Longitude of the east edge in degrees
        code_length: Number of significant digits in the decoded code
    """

    lat_lo: float
    lng_lo: float
    lat_hi: float
    lng_hi: float
    code_length: int

    @classmethod
    def from_code(cls, code: str) -> CodeArea:
        """Factory method to create a CodeArea from a full code.

        Args:
            code: Full Plus Code, in any case

        Returns:
            CodeArea covering the code

        Raises:
            InvalidCodeError: If the code is not valid
            FullCodeExpectedError: If the code is a short code

        Examples:
            >>> area = CodeArea.from_code("8FVC9G8F+6X")
            >>> area.lat_lo, area.lng_lo
            (47.3655, 8.524875)
        """
        if not is_valid(code):
            raise InvalidCodeError(f"Invalid Plus Code: {code!r}")
        if not is_full(code):
            raise FullCodeExpectedError(f"Full Plus Code expected, got {code!r}")

        clean_code = code.replace(SEPARATOR, "").replace(PADDING_CHARACTER, "").upper()
        clean_code = clean_code[:MAX_DIGIT_COUNT]

        normal_lat, normal_lng, place_value = _decode_pairs(clean_code)
        lat_precision = place_value / PAIR_PRECISION
        lng_precision = place_value / PAIR_PRECISION

        grid_lat = grid_lng = 0
        if len(clean_code) > PAIR_CODE_LENGTH:
            grid_lat, grid_lng, row_place_value, col_place_value = _decode_grid(clean_code)
            lat_precision = row_place_value / FINAL_LAT_PRECISION
            lng_precision = col_place_value / FINAL_LNG_PRECISION

        lat = normal_lat / PAIR_PRECISION + grid_lat / FINAL_LAT_PRECISION
        lng = normal_lng / PAIR_PRECISION + grid_lng / FINAL_LNG_PRECISION

        # Round away floating point noise from the division.
        return cls(
            lat_lo=round(lat, 14),
            lng_lo=round(lng, 14),
            lat_hi=round(lat + lat_precision, 14),
            lng_hi=round(lng + lng_precision, 14),
            code_length=min(len(clean_code), MAX_DIGIT_COUNT),
        )

    @property
    def lat_center(self) -> float:
        """Latitude of the center, never above 90."""
        return min(self.lat_lo + (self.lat_hi - self.lat_lo) / 2, float(LATITUDE_MAX))

    @property
    def lng_center(self) -> float:
        """Longitude of the center, never above 180."""
        return min(self.lng_lo + (self.lng_hi - self.lng_lo) / 2, float(LONGITUDE_MAX))

    @property
    def center(self) -> LatLng:
        """Center point as (latitude, longitude)."""
        return self.lat_center, self.lng_center

    @property
    def height_degrees(self) -> float:
        """Cell height in latitude degrees."""
        return self.lat_hi - self.lat_lo

    @property
    def width_degrees(self) -> float:
        """Cell width in longitude degrees."""
        return self.lng_hi - self.lng_lo

    def to_bbox(self) -> BBox:
        """Return bounding box as (min_lng, min_lat, max_lng, max_lat).

        Returns:
            Tuple of (west, south, east, north) in degrees
        """
        return self.lng_lo, self.lat_lo, self.lng_hi, self.lat_hi

    def to_polygon(self, closed: bool = True) -> Polygon:
        """Corners of the area as a ring of (lng, lat) points.

        Args:
            closed: Append the first corner again to close the ring, as GeoJSON expects

        Returns:
            Corners starting at the south-west and turning east then north
        """
        corners = [
            (self.lng_lo, self.lat_lo),
            (self.lng_hi, self.lat_lo),
            (self.lng_hi, self.lat_hi),
            (self.lng_lo, self.lat_hi),
        ]
        if closed:
            corners.append(corners[0])
        return corners


# Helper Functions ------------------------------------------------------------
def _decode_pairs(clean_code: str) -> Tuple[int, int, int]:
    """Decode the paired section of a cleaned code.

    Args:
        clean_code: Upper case digits, without separator or padding

    Returns:
        Tuple of (latitude, longitude, last place value), with the coordinates
        scaled by PAIR_PRECISION
    """
    normal_lat = -LATITUDE_MAX * PAIR_PRECISION
    normal_lng = -LONGITUDE_MAX * PAIR_PRECISION
    place_value = PAIR_FIRST_PLACE_VALUE
    digits = min(len(clean_code), PAIR_CODE_LENGTH)

    for i in range(0, digits, 2):
        normal_lat += CODE_DECODE_MAP[clean_code[i]] * place_value
        normal_lng += CODE_DECODE_MAP[clean_code[i + 1]] * place_value
        if i < digits - 2:
            place_value //= ENCODING_BASE

    return normal_lat, normal_lng, place_value


def _decode_grid(clean_code: str) -> Tuple[int, int, int, int]:
    """Decode the grid section of a cleaned code.

    Returns:
        Tuple of (latitude, longitude, row place value, column place value),
        with the coordinates scaled by the final precisions
    """
    grid_lat = grid_lng = 0
    row_place_value = GRID_LAT_FIRST_PLACE_VALUE
    col_place_value = GRID_LNG_FIRST_PLACE_VALUE
    digits = min(len(clean_code), MAX_DIGIT_COUNT)

    for i in range(PAIR_CODE_LENGTH, digits):
        row, col = divmod(CODE_DECODE_MAP[clean_code[i]], GRID_COLUMNS)
        grid_lat += row * row_place_value
        grid_lng += col * col_place_value
        if i < digits - 1:
            row_place_value //= GRID_ROWS
            col_place_value //= GRID_COLUMNS

    return grid_lat, grid_lng, row_place_value, col_place_value


def _has_valid_padding(code: str, prefix: str) -> bool:
    """Check the padded prefix of a code with the separator in position 8."""
    if prefix.startswith(PADDING_CHARACTER):
        return False
    padding = prefix[prefix.index(PADDING_CHARACTER):prefix.rindex(PADDING_CHARACTER) + 1]
    if len(padding) % 2 or padding.strip(PADDING_CHARACTER):
        return False
    # Padding runs up to the separator and nothing follows it.
    return prefix.endswith(PADDING_CHARACTER) and code.endswith(SEPARATOR)


# Public API ------------------------------------------------------------------
def clip_latitude(latitude: float) -> float:
    """Clip a latitude into the range -90 to 90."""
    return max(-LATITUDE_MAX, min(LATITUDE_MAX, latitude))


def normalize_longitude(longitude: float) -> float:
    """Normalize a longitude into the range -180 to 180, not including 180.

    Args:
        longitude: Longitude in degrees, any magnitude

    Returns:
        Wrapped longitude in [-180, 180)
    """
    if -LONGITUDE_MAX <= longitude < LONGITUDE_MAX:
        return longitude
    wrapped = (longitude + LONGITUDE_MAX) % (2 * LONGITUDE_MAX) - LONGITUDE_MAX
    # A tiny negative remainder rounds up to the full span.
    return -float(LONGITUDE_MAX) if wrapped >= LONGITUDE_MAX else wrapped


def is_valid(code: str) -> bool:
    """Determine if a code is a valid short or full Plus Code.

    All characters must be from the code alphabet, the separator or the
    padding character, in any case. Exactly one separator is required, at an
    even position no later than the eighth digit. Padding is only allowed in
    full codes before the separator, as an even run that does not lead and
    runs up to a separator ending the code.

    Examples:
        >>> is_valid("8FVC9G8F+6X")
        True
        >>> is_valid("8FVC9G8F6X")
        False
    """
    if not isinstance(code, str):
        return False

    parts = code.split(SEPARATOR)
    if len(parts) != 2 or parts == ["", ""]:
        return False

    prefix, suffix = parts
    sep_pos = len(prefix)
    if sep_pos > SEPARATOR_POSITION or sep_pos % 2:
        return False

    if PADDING_CHARACTER in prefix:
        if sep_pos < SEPARATOR_POSITION or not _has_valid_padding(code, prefix):
            return False
    elif len(suffix) == 1:
        return False
    if PADDING_CHARACTER in suffix:
        return False

    return all(char.upper() in VALID_CHARACTERS for char in code)


def is_short(code: str) -> bool:
    """Determine if a code is a valid short code.

    A short code has had at least two leading digits removed, so its
    separator comes before position 8.

    Examples:
        >>> is_short("9G8F+6X")
        True
        >>> is_short("8FVC9G8F+6X")
        False
    """
    return is_valid(code) and code.index(SEPARATOR) < SEPARATOR_POSITION


def is_full(code: str) -> bool:
    """Determine if a code is a valid full code.

    Not every combination of digits decodes to a legal latitude and
    longitude, so the first latitude and longitude digits are range checked.

    Examples:
        >>> is_full("8FVC9G8F+6X")
        True
        >>> is_full("9G8F+6X")
        False
    """
    if not is_valid(code) or is_short(code):
        return False

    first_lat_digit = CODE_DECODE_MAP.get(code[0].upper())
    if first_lat_digit is None or first_lat_digit * ENCODING_BASE >= LATITUDE_MAX * 2:
        return False
    if len(code) > 1:
        first_lng_digit = CODE_DECODE_MAP.get(code[1].upper())
        return first_lng_digit is not None and first_lng_digit * ENCODING_BASE < LONGITUDE_MAX * 2
    return True


def location_to_integers(latitude: float, longitude: float) -> Tuple[int, int]:
    """Convert a location in degrees into integer counts of the finest cell.

    Latitude is clamped and longitude wrapped, so any input is accepted.

    Args:
        latitude: Latitude in degrees
        longitude: Longitude in degrees

    Returns:
        Tuple of (lat_val, lng_val), both non-negative

    Examples:
        >>> location_to_integers(47.365590, 8.524997)
        (3434139750, 1544396775)
    """
    lat_val = math.floor(latitude * FINAL_LAT_PRECISION) + LATITUDE_MAX * FINAL_LAT_PRECISION
    lat_val = max(0, min(lat_val, 2 * LATITUDE_MAX * FINAL_LAT_PRECISION - 1))

    lng_val = math.floor(longitude * FINAL_LNG_PRECISION) + LONGITUDE_MAX * FINAL_LNG_PRECISION
    lng_val %= 2 * LONGITUDE_MAX * FINAL_LNG_PRECISION

    return lat_val, lng_val


def encode_integers(lat_val: int, lng_val: int, code_length: int = PAIR_CODE_LENGTH) -> str:
    """Encode integer coordinates from location_to_integers into a code.

    Args:
        lat_val: Latitude as a count of the finest latitude cell
        lng_val: Longitude as a count of the finest longitude cell
        code_length: Number of digits, 2-15; even when below 10

    Returns:
        Upper case Plus Code, padded when shorter than 8 digits

    Raises:
        InvalidCodeLengthError: If the code length cannot be encoded

    Examples:
        >>> encode_integers(4736559000, 852499700, 10)
        'F7F6F367+WX'
    """
    if code_length < MIN_DIGIT_COUNT or (code_length < PAIR_CODE_LENGTH and code_length % 2):
        raise InvalidCodeLengthError(f"Invalid Plus Code length: {code_length}")
    code_length = min(code_length, MAX_DIGIT_COUNT)

    # Digits are produced least significant first and reversed at the end.
    reversed_digits: List[str] = []
    if code_length > PAIR_CODE_LENGTH:
        for _ in range(GRID_CODE_LENGTH):
            lat_digit = lat_val % GRID_ROWS
            lng_digit = lng_val % GRID_COLUMNS
            reversed_digits.append(CODE_ALPHABET[lat_digit * GRID_COLUMNS + lng_digit])
            lat_val //= GRID_ROWS
            lng_val //= GRID_COLUMNS
    else:
        lat_val //= GRID_ROWS ** GRID_CODE_LENGTH
        lng_val //= GRID_COLUMNS ** GRID_CODE_LENGTH

    for _ in range(PAIR_CODE_LENGTH // 2):
        reversed_digits.append(CODE_ALPHABET[lng_val % ENCODING_BASE])
        reversed_digits.append(CODE_ALPHABET[lat_val % ENCODING_BASE])
        lat_val //= ENCODING_BASE
        lng_val //= ENCODING_BASE

    digits = "".join(reversed(reversed_digits))
    code = digits[:SEPARATOR_POSITION] + SEPARATOR + digits[SEPARATOR_POSITION:]

    if code_length >= SEPARATOR_POSITION:
        return code[:code_length + 1]
    padding = PADDING_CHARACTER * (SEPARATOR_POSITION - code_length)
    return code[:code_length] + padding + SEPARATOR


def encode(latitude: float, longitude: float, code_length: int = PAIR_CODE_LENGTH) -> str:
    """Encode a location into a Plus Code.

    Args:
        latitude: Latitude in degrees; clamped to [-90, 90]
        longitude: Longitude in degrees; wrapped into [-180, 180)
        code_length: Number of digits, 2-15 (default: 10); even when below 10

    Returns:
        Upper case Plus Code

    Raises:
        InvalidCodeLengthError: If the code length cannot be encoded

    Examples:
        >>> encode(47.365590, 8.524997)
        '8FVC9G8F+6X'
        >>> encode(47.365590, 8.524997, 11)
        '8FVC9G8F+6XQ'
    """
    lat_val, lng_val = location_to_integers(latitude, longitude)
    return encode_integers(lat_val, lng_val, code_length)


def decode(code: str) -> CodeArea:
    """Decode a full Plus Code into the area it covers.

    Args:
        code: Full Plus Code, in any case

    Returns:
        CodeArea with the bounds, center and code length

    Raises:
        InvalidCodeError: If the code is not valid
        FullCodeExpectedError: If the code is a short code

    Examples:
        >>> area = decode("8FVC9G8F+6X")
        >>> area.lat_lo, area.lng_lo, area.code_length
        (47.3655, 8.524875, 10)
    """
    return CodeArea.from_code(code)


def shorten(code: str, latitude: float, longitude: float) -> str:
    """Remove leading digits from a full code relative to a reference location.

    The closer the reference location is to the center of the code, the more
    digits can be removed. The reference must lie well inside the cell of the
    removed digits so that recover_nearest can restore them.

    Args:
        code: Full, unpadded Plus Code
        latitude: Reference latitude in degrees
        longitude: Reference longitude in degrees

    Returns:
        Upper case code with up to eight leading digits removed; the full
        code when the reference location is too far away

    Raises:
        FullCodeExpectedError: If the code is not a valid full code
        CannotShortenPaddedCodesError: If the code contains padding
        CodeLengthTooSmallError: If the code has fewer than 6 digits

    Examples:
        >>> shorten("8FVC9G8F+6X", 47.5, 8.5)
        '9G8F+6X'
    """
    if not is_full(code):
        raise FullCodeExpectedError(f"Full Plus Code expected, got {code!r}")
    if PADDING_CHARACTER in code:
        raise CannotShortenPaddedCodesError(f"Cannot shorten padded code {code!r}")

    code = code.upper()
    code_area = decode(code)
    if code_area.code_length < MIN_TRIMMABLE_CODE_LEN:
        raise CodeLengthTooSmallError(
            f"Code {code!r} must have at least {MIN_TRIMMABLE_CODE_LEN} digits to be shortened"
        )

    latitude = clip_latitude(latitude)
    longitude = normalize_longitude(longitude)
    code_range = max(abs(code_area.lat_center - latitude), abs(code_area.lng_center - longitude))

    for i in range(len(PAIR_RESOLUTIONS) - 2, -1, -1):
        if code_range < PAIR_RESOLUTIONS[i] * SHORTEN_RANGE_FACTOR:
            logger.debug("Shortening %s by %d digits (range %f)", code, (i + 1) * 2, code_range)
            return code[(i + 1) * 2:]

    logger.debug("Reference too far from %s to shorten (range %f)", code, code_range)
    return code


def recover_nearest(code: str, reference_latitude: float, reference_longitude: float) -> str:
    """Recover the nearest full code to a reference location from a short code.

    The missing leading digits are taken from the reference location, then the
    result is moved by one cell on either axis if that brings it closer to the
    reference. The reference does not need to be the one used to shorten.

    Args:
        code: Short Plus Code; a full code is returned upper cased
        reference_latitude: Reference latitude in degrees
        reference_longitude: Reference longitude in degrees

    Returns:
        Upper case full Plus Code

    Raises:
        InvalidCodeError: If the code is neither a full nor a short code

    Examples:
        >>> recover_nearest("9G8F+6X", 47.4, 8.6)
        '8FVC9G8F+6X'
        >>> recover_nearest("8F+6X", 47.4, 8.6)
        '8FVCCJ8F+6X'
    """
    if is_full(code):
        return code.upper()
    if not is_short(code):
        raise InvalidCodeError(f"Invalid short Plus Code: {code!r}")

    reference_latitude = clip_latitude(reference_latitude)
    reference_longitude = normalize_longitude(reference_longitude)
    code = code.upper()

    padding_length = SEPARATOR_POSITION - code.index(SEPARATOR)
    # Size in degrees of the cell named by the missing digits.
    resolution = ENCODING_BASE ** (2 - padding_length / 2)
    half_resolution = resolution / 2.0

    reference_code = encode(reference_latitude, reference_longitude)
    code_area = decode(reference_code[:padding_length] + code)

    lat_center = code_area.lat_center
    if (reference_latitude + half_resolution < lat_center
            and lat_center - resolution >= -LATITUDE_MAX):
        lat_center -= resolution
    elif (reference_latitude - half_resolution > lat_center
            and lat_center + resolution <= LATITUDE_MAX):
        lat_center += resolution

    lng_center = code_area.lng_center
    if reference_longitude + half_resolution < lng_center:
        lng_center -= resolution
    elif reference_longitude - half_resolution > lng_center:
        lng_center += resolution

    if (lat_center, lng_center) != code_area.center:
        logger.debug(
            "Moved recovered %s center from %s to %s",
            code, code_area.center, (lat_center, lng_center),
        )

    return encode(lat_center, lng_center, code_area.code_length)


# Public exports
__all__ = [
    # Core functions
    "encode",
    "decode",
    "shorten",
    "recover_nearest",

    # Validation
    "is_valid",
    "is_short",
    "is_full",

    # Lower level helpers
    "clip_latitude",
    "normalize_longitude",
    "location_to_integers",
    "encode_integers",

    # Data types
    "CodeArea",
    "LatLng",
    "LngLat",
    "BBox",
    "Polygon",

    # Exceptions
    "PlusCodeError",
    "InvalidCodeError",
    "FullCodeExpectedError",
    "CannotShortenPaddedCodesError",
    "CodeLengthTooSmallError",
    "InvalidCodeLengthError",
]
