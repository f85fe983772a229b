# -*- coding: utf-8 -*-

from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from .models import Connection

DEFAULT_API_VERSION = "4.16.0"

# Picks the patient id out of the followed connections; None means "not found".
ConnectionFunction = Callable[[List[Connection]], Optional[str]]


@dataclass
class ClientConfig:
    username: str
    password: str
    api_version: Optional[str] = None
    region: Optional[str] = None
    connection_name: Optional[str] = None
    connection_function: Optional[ConnectionFunction] = None
    timeout_s: Optional[float] = None
    verify_tls: bool = True

    @property
    def version(self) -> str:
        return self.api_version or DEFAULT_API_VERSION

    def copy(self) -> "ClientConfig":
        return replace(self)

    def __repr__(self) -> str:
        return (
            f"ClientConfig(username={self.username!r}, password='***', "
            f"api_version={self.version!r}, region={self.region!r}, "
            f"connection_name={self.connection_name!r}, "
            f"connection_function={'<function>' if self.connection_function else None})"
        )
