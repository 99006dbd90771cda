"""
Presentation Control Helper
Copyright (C) 2024 thiccaxe

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published
by the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

import asyncio
import dataclasses
import time
from typing import Optional

from websockets.asyncio.server import ServerConnection
from websockets.protocol import State as WebsocketState


@dataclasses.dataclass
class Connection:
    cid: str  # per-connection id, never the auth token
    websocket: ServerConnection
    remote_address: Optional[tuple] = None
    authenticated: bool = False
    last_activity: float = dataclasses.field(default_factory=time.monotonic)

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    @property
    def is_open(self) -> bool:
        return self.websocket.state == WebsocketState.OPEN


class ServerData:

    def __init__(self):
        self.connections: dict[str, Connection] = dict()

        self.shutdown_event = asyncio.Event()

    def authenticated_connections(self) -> list[Connection]:
        return [connection for connection in self.connections.values() if connection.authenticated]
