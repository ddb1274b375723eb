from datetime import date

import pytest

from region_survey.services.region_export import build_regions_csv, export_filename


def test_build_regions_csv_layout():
    content = build_regions_csv(["서울 강남구 역삼동", "경기 성남시 분당구 정자동", "경기 수원시"])

    assert content.startswith(b"\xef\xbb\xbf")
    text = content.decode("utf-8-sig")
    assert text.split("\n") == [
        "시/도,시/군/구,읍/면/동",
        '"서울","강남구","역삼동"',
        '"경기","성남시","분당구 정자동"',
        '"경기","수원시",""',
    ]


def test_build_regions_csv_escapes_quotes():
    text = build_regions_csv(['서울 "강남" 역삼동']).decode("utf-8-sig")
    assert text.split("\n")[1] == '"서울","""강남""","역삼동"'


def test_build_regions_csv_requires_regions():
    with pytest.raises(ValueError):
        build_regions_csv([])


def test_export_filename():
    assert export_filename(date(2026, 3, 2)) == "수요조사_지역목록_2026-03-02.csv"
