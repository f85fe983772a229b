import pytest

from librelinkup.regions import GLOBAL_BASE_URL, Region, region_to_base_url


@pytest.mark.parametrize("code, url", [
    ("us", "https://api-us.libreview.io"),
    ("EU", "https://api-eu.libreview.io"),
    ("eu2", "https://api-eu2.libreview.io"),
    (" de ", "https://api-de.libreview.io"),
    ("ru", "https://api.libreview.ru"),
    ("cn", "https://api-cn.myfreestyle.cn"),
    ("global", GLOBAL_BASE_URL),
])
def test_known_regions(code, url):
    assert region_to_base_url(code) == url


@pytest.mark.parametrize("code", ["", None, "xx", "europe", "us-east", "zz9"])
def test_unknown_regions_fall_back_to_global(code):
    assert Region.from_code(code) is Region.GLOBAL
    assert region_to_base_url(code) == GLOBAL_BASE_URL


def test_lookup_is_idempotent():
    for region in Region:
        assert Region.from_code(region.code) is region
        assert Region.from_code(str(region)) is region
