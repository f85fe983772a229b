# -*- coding: utf-8 -*-

from enum import Enum
from typing import Optional


GLOBAL_BASE_URL = "https://api.libreview.io"


class Region(Enum):
    GLOBAL = ("global", GLOBAL_BASE_URL)
    AE = ("ae", "https://api-ae.libreview.io")
    AP = ("ap", "https://api-ap.libreview.io")
    AU = ("au", "https://api-au.libreview.io")
    CA = ("ca", "https://api-ca.libreview.io")
    DE = ("de", "https://api-de.libreview.io")
    EU = ("eu", "https://api-eu.libreview.io")
    EU2 = ("eu2", "https://api-eu2.libreview.io")
    FR = ("fr", "https://api-fr.libreview.io")
    JP = ("jp", "https://api-jp.libreview.io")
    US = ("us", "https://api-us.libreview.io")
    LA = ("la", "https://api-la.libreview.io")
    RU = ("ru", "https://api.libreview.ru")
    CN = ("cn", "https://api-cn.myfreestyle.cn")

    def __init__(self, code: str, base_url: str):
        self.code = code
        self.base_url = base_url

    def __str__(self) -> str:
        return self.code

    @classmethod
    def from_code(cls, code: Optional[str]) -> "Region":
        """
        Looks up a region by its code ("us", "EU2", ...), case-insensitive.
        Unknown or empty codes fall back to GLOBAL, which makes the service
        redirect to the right region on login.
        """
        if not code:
            return cls.GLOBAL

        r = code.strip().lower()
        for region in cls:
            if region.code == r:
                return region
        return cls.GLOBAL


def region_to_base_url(region: Optional[str]) -> str:
    return Region.from_code(region).base_url
