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

import logging
import socket
from typing import Optional

import zeroconf
from zeroconf import IPVersion
from zeroconf.asyncio import AsyncZeroconf, AsyncServiceInfo

SERVICE_TYPE = "_presentation-control._tcp.local."


class ZeroconfManager:

    def __init__(self):
        self._zeroconf = AsyncZeroconf(ip_version=IPVersion.V4Only)

    async def register_service(self, service: AsyncServiceInfo):
        await self._zeroconf.async_register_service(service)

    async def unregister_all_services(self):
        await self._zeroconf.async_unregister_all_services()

    async def close(self):
        await self._zeroconf.async_close()


def local_address() -> str:
    try:
        return socket.gethostbyname(socket.gethostname())
    except socket.gaierror:
        return "127.0.0.1"


class ControlServiceZeroconf:
    """
    advertises the control websocket so control surfaces on the network can find it
    """
    _service: AsyncServiceInfo

    def __init__(self, config):
        self._config = config
        self._manager: Optional[ZeroconfManager] = None

    @property
    def enabled(self) -> bool:
        return bool(self._config.get("mdns", {}).get("enabled", False))

    def service_info(self, address: str) -> AsyncServiceInfo:
        name = self._config['server']['name']
        return AsyncServiceInfo(
            SERVICE_TYPE,
            f"{name}.{SERVICE_TYPE}",
            addresses=[socket.inet_aton(address)],
            port=int(self._config['server']['websocket_port']),
            properties={
                "auth": "token",
                "protocol": "json",
            },
            server=f"{socket.gethostname().split('.')[0]}.local.",
        )

    async def start(self):
        if not self.enabled:
            logging.debug("mDNS advertisement disabled")
            return
        try:
            self._manager = ZeroconfManager()
            self._service = self.service_info(local_address())
            await self._manager.register_service(self._service)
            logging.info(f"Advertising {self._service.name} via mDNS")
        except (zeroconf.Error, OSError) as e:
            logging.exception(e)
            logging.warning("Could not register mDNS service, continuing without it")
            await self.stop()

    async def stop(self):
        if self._manager is None:
            return
        await self._manager.unregister_all_services()
        await self._manager.close()
        self._manager = None
        logging.debug(f"Unregistered services.")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
