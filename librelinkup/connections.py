# -*- coding: utf-8 -*-

from typing import Any, Dict, List, Optional

from .config import ConnectionFunction
from .errors import (
    ConnectionFunctionFailedError,
    ConnectionNotFoundError,
    NoConnectionsError,
)
from .models import Connection


def parse_connections(body: Dict[str, Any]) -> List[Connection]:
    return [Connection.from_dict(c) for c in body["data"]]


def resolve_connection_id(
    connections: List[Connection],
    connection_name: Optional[str] = None,
    connection_function: Optional[ConnectionFunction] = None,
) -> str:
    """
    Picks the patient id to read from.

    By name ("First Last", case-insensitive) if configured, else by the custom
    function, else the first connection in the order the service returned.
    """
    if not connections:
        raise NoConnectionsError()

    if connection_name is not None:
        wanted = connection_name.lower()
        for c in connections:
            if c.full_name.lower() == wanted:
                return c.patient_id
        raise ConnectionNotFoundError(connection_name)

    if connection_function is not None:
        patient_id = connection_function(connections)
        if patient_id is None:
            raise ConnectionFunctionFailedError()
        return patient_id

    return connections[0].patient_id
