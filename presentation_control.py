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
import logging
import os
import signal
from typing import Optional

import aiofiles.os
import tomlkit

from config import Config, ConfigurationLoadError
from drivers import create_drivers
from file_registry import FileRegistry
from logger import setup_logging, show_auth_token
from mdns_registration import ControlServiceZeroconf
from presentation_manager import PresentationManager
from server_data import ServerData
from token_manager import TokenManager
from websocket_server import WebsocketServer


class PresentationControl:

    def __init__(self, config: Config, loop: asyncio.AbstractEventLoop):
        self._config = config
        self._loop = loop
        self._data = ServerData()
        self._token_manager = TokenManager(self._config.secrets)
        self._registry = FileRegistry()
        self._manager = PresentationManager(self._registry, create_drivers(self._config.config.get("drivers")))
        self._websocket_server = WebsocketServer(self._config.config, self._data, self._manager, self._token_manager)
        self._registry.on_change = self._websocket_server.broadcast_folder_changed
        self._mdns = ControlServiceZeroconf(self._config.config)
        self._rotation_task: Optional[asyncio.Task] = None

    async def begin(self):
        logging.info("Starting Presentation Control Helper")
        self._token_manager.get_or_create_token()
        await self._config.save_secrets()
        token_info = self._token_manager.get_token_info()

        logging.info("Starting MDNS")
        async with self._mdns:
            logging.info("Starting Presentation Control Websocket Server")
            async with self._websocket_server:
                await self.load_last_folder()
                self._install_signal_handlers()
                show_auth_token(token_info["token"], self._websocket_server.port, token_info["generated_at"])
                try:
                    logging.info("Ctrl^C to quit, SIGHUP to regenerate the auth token")
                    while True:
                        await asyncio.sleep(1)
                except asyncio.CancelledError:
                    logging.info("Cancelled ...")
                finally:
                    logging.info("Stopping Server ...")
                    await self._manager.close()

    def _install_signal_handlers(self):
        try:
            self._loop.add_signal_handler(signal.SIGHUP, self._on_sighup)
        except (NotImplementedError, AttributeError):
            logging.debug("Token rotation signal not available on this platform")

    def _on_sighup(self):
        if self._rotation_task is not None and not self._rotation_task.done():
            return
        self._rotation_task = self._loop.create_task(self.regenerate_auth_token())
        self._rotation_task.add_done_callback(self._on_rotation_done)

    @staticmethod
    def _on_rotation_done(task: asyncio.Task):
        if task.cancelled():
            return
        if task.exception() is not None:
            logging.error(f"Could not regenerate auth token: {task.exception()}")

    async def regenerate_auth_token(self) -> str:
        token = await self._websocket_server.rotate_token()
        await self._config.save_secrets()
        logging.info("Auth token regenerated, clients must reconnect")
        show_auth_token(token, self._websocket_server.port)
        return token

    def _remember_folder(self, folder: str):
        if "presentations" not in self._config.config:
            self._config.config["presentations"] = tomlkit.table()
        self._config.config["presentations"]["folder"] = folder

    async def load_last_folder(self):
        last_folder = str(self._config.config.get("presentations", {}).get("folder", ""))
        if not last_folder:
            return
        if await aiofiles.os.path.isdir(last_folder):
            await self._manager.set_folder(last_folder)
            logging.info(f"Restored last folder: {last_folder}")
        else:
            logging.warning(f"Last folder no longer exists: {last_folder}")
            self._remember_folder("")
            await self._config.save_config()

    async def set_folder(self, folder: str):
        await self._manager.set_folder(folder)
        self._remember_folder(self._registry.folder)
        await self._config.save_config()
        await self._websocket_server.broadcast_folder_changed(self._registry.folder, self._registry.list_files())

    async def clear_folder(self):
        await self._manager.clear_folder()
        self._remember_folder("")
        await self._config.save_config()
        await self._websocket_server.broadcast_folder_changed(None, ())


async def main():
    logging.info("Starting presentation control ...")

    config = Config(
        os.environ.get("PRESENTATION_CONTROL_CONFIG", "./config.toml"),
        os.environ.get("PRESENTATION_CONTROL_SECRETS", "./secrets.toml"),
    )
    loop = asyncio.get_running_loop()

    try:
        await config.initialize()

        presentation_control = PresentationControl(config, loop)
        await presentation_control.begin()
    except ConfigurationLoadError:
        logging.error("Could not load configuration. Exiting")
        return
    finally:
        await config.close()


def run():
    setup_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.info("Stopped.")


if __name__ == "__main__":
    run()
