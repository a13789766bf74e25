from __future__ import annotations

import pytest

from pluscode import (
    CodeArea,
    FullCodeExpectedError,
    InvalidCodeError,
    PlusCodeError,
    decode,
    encode,
)


def test_decode_default_length() -> None:
    area = decode("8FVC9G8F+6X")
    assert area.lat_lo == pytest.approx(47.3655, abs=1e-10)
    assert area.lng_lo == pytest.approx(8.524875, abs=1e-10)
    assert area.lat_hi == pytest.approx(47.365625, abs=1e-10)
    assert area.lng_hi == pytest.approx(8.525, abs=1e-10)
    assert area.center == pytest.approx((47.3655625, 8.5249375), abs=1e-10)
    assert area.code_length == 10


def test_decode_ignores_case() -> None:
    assert decode("8fvc9g8f+6x") == decode("8FVC9G8F+6X")


def test_decode_grid_digit() -> None:
    area = decode("8FVC9G8F+6XQ")
    assert area.lat_lo == pytest.approx(47.365575, abs=1e-10)
    assert area.lng_lo == pytest.approx(8.52496875, abs=1e-10)
    assert area.lat_hi == pytest.approx(47.3656, abs=1e-10)
    assert area.lng_hi == pytest.approx(8.525, abs=1e-10)
    assert area.code_length == 11


def test_decode_padded_code() -> None:
    area = decode("8FVC0000+")
    assert (area.lat_lo, area.lng_lo, area.lat_hi, area.lng_hi) == pytest.approx((47.0, 8.0, 48.0, 9.0))
    assert area.code_length == 4


def test_decode_fifteen_digits() -> None:
    area = decode("8FVC9G8F+6XQQ435")
    assert area.code_length == 15
    assert area.lat_lo == pytest.approx(47.36559, abs=1e-10)
    assert area.height_degrees == pytest.approx(4e-8, abs=1e-12)


def test_decode_truncates_extra_digits() -> None:
    assert decode("8FVC9G8F+6XQQ43522") == decode("8FVC9G8F+6XQQ435")


@pytest.mark.parametrize(
    "code_length, height, width",
    [
        (2, 20.0, 20.0),
        (4, 1.0, 1.0),
        (6, 0.05, 0.05),
        (8, 0.0025, 0.0025),
        (10, 0.000125, 0.000125),
        (11, 0.000025, 0.00003125),
        (12, 0.000005, 0.0000078125),
        (13, 0.000001, 0.000001953125),
        (14, 0.0000002, 0.00000048828125),
        (15, 0.00000004, 0.0000001220703125),
    ],
)
def test_area_size_matches_code_length(code_length: int, height: float, width: float) -> None:
    area = decode(encode(47.365590, 8.524997, code_length))
    assert area.code_length == code_length
    assert area.height_degrees == pytest.approx(height, abs=1e-11)
    assert area.width_degrees == pytest.approx(width, abs=1e-11)


def test_decode_center_never_exceeds_north_pole() -> None:
    area = decode("C2X2X2X2+X2")
    assert area.lat_hi == pytest.approx(90.0)
    assert area.lat_center <= 90.0


@pytest.mark.parametrize("code", ["9G8F+6X", "CJ+2VX", "X2222222+22"])
def test_decode_requires_full_code(code: str) -> None:
    with pytest.raises(FullCodeExpectedError, match=r"Full Plus Code expected") as excinfo:
        decode(code)
    assert excinfo.value.reason == "full_code_expected"


@pytest.mark.parametrize("code", ["asdsa+21", "8FVC9G8F6X", "", 1_234_567_890])
def test_decode_rejects_invalid_code(code) -> None:
    with pytest.raises(InvalidCodeError) as excinfo:
        decode(code)
    assert excinfo.value.reason == "invalid_code"
    assert isinstance(excinfo.value, PlusCodeError)
    assert isinstance(excinfo.value, ValueError)


def test_code_area_views() -> None:
    area = CodeArea.from_code("8FVC0000+")
    assert area.to_bbox() == pytest.approx((8.0, 47.0, 9.0, 48.0))
    polygon = area.to_polygon()
    assert len(polygon) == 5
    assert polygon[0] == polygon[-1]
    assert polygon[:4] == [(8.0, 47.0), (9.0, 47.0), (9.0, 48.0), (8.0, 48.0)]
    assert len(area.to_polygon(closed=False)) == 4


def test_code_area_is_immutable() -> None:
    area = decode("8FVC9G8F+6X")
    with pytest.raises(AttributeError):
        area.lat_lo = 0.0


@pytest.mark.parametrize("code", ["8FVC9G8F+60", "8FVC9G8F+6X00", "8000000F+"])
def test_decode_rejects_misplaced_padding(code: str) -> None:
    with pytest.raises(InvalidCodeError) as excinfo:
        decode(code)
    assert excinfo.value.reason == "invalid_code"
