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
import json
import logging
import time
import uuid
from typing import Optional

import websockets
from websockets.asyncio.server import ServerConnection, Server, serve, broadcast

from drivers import DriverError
from presentation_manager import PresentationManager, PresentationError
from server_data import ServerData, Connection
from token_manager import TokenManager

HANDSHAKE_MESSAGE = "Presentation Control Helper v1.0"
TOKEN_CHANGED_CLOSE_CODE = 4001

# commands that drive the session; each is followed by a status broadcast
SESSION_COMMANDS = {
    "start": PresentationManager.start_presentation,
    "stop": PresentationManager.stop_presentation,
    "close": PresentationManager.close_presentation,
    "next": PresentationManager.next_slide,
    "prev": PresentationManager.prev_slide,
}


class CommandError(Exception): pass


class WebsocketServer:

    def __init__(self, config, data: ServerData, manager: PresentationManager, token_manager: TokenManager):
        server_config = config["server"]
        self._host = str(server_config.get("websocket_host", ""))
        self._port = int(server_config["websocket_port"])
        self._heartbeat_interval = float(server_config.get("heartbeat_interval", 30))
        self._heartbeat_check_interval = float(server_config.get("heartbeat_check_interval", 10))
        self._data = data
        self._manager = manager
        self._token_manager = token_manager
        self._server: Optional[Server] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        # a command and the status broadcast that follows it are never interleaved with another command
        self._command_lock = asyncio.Lock()

    @property
    def port(self) -> int:
        if self._server is not None and self._server.sockets:
            return self._server.sockets[0].getsockname()[1]
        return self._port

    @property
    def connection_count(self) -> int:
        return len(self._data.connections)

    async def handler(self, websocket: ServerConnection):
        connection = Connection(cid=uuid.uuid4().hex, websocket=websocket, remote_address=websocket.remote_address)
        self._data.connections[connection.cid] = connection
        logging.info(f"Client connected: {connection.cid} from {connection.remote_address}")

        try:
            await self._send(connection, {
                "type": "handshake",
                "message": HANDSHAKE_MESSAGE,
                "authRequired": True,
            })
            async for message in websocket:
                connection.touch()
                await self._handle_message(connection, message)
        except websockets.exceptions.ConnectionClosed:
            logging.debug(f"Websocket connection {connection.cid} closed")
        finally:
            self._data.connections.pop(connection.cid, None)
            logging.info(f"Client disconnected: {connection.cid}")

    async def _handle_message(self, connection: Connection, message):
        try:
            packet = json.loads(message)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logging.warning(f"{connection.cid} sent non-JSON data: {e}")
            await self._send_error(connection, "Invalid JSON format")
            return

        if not isinstance(packet, dict) or not isinstance(packet.get("type"), str):
            logging.warning(f"Malformed packet from {connection.cid} - no type")
            await self._send_error(connection, "Invalid message format")
            return

        if packet["type"] == "auth":
            await self._authenticate(connection, packet)
            return

        logging.debug(f"Received from {connection.cid}: {packet}")

        if not connection.authenticated:
            await self._send_error(connection, "Authentication required")
            return

        try:
            await self._handle_packet(connection, packet)
        except CommandError as e:
            await self._send_error(connection, str(e))
        except (PresentationError, DriverError) as e:
            logging.warning(f"Command {packet['type']} failed: {e}")
            await self._send_error(connection, f"Command failed: {e}")
        except Exception as e:
            logging.exception(e)
            await self._send_error(connection, f"Command failed: {e}")

    async def _authenticate(self, connection: Connection, packet: dict):
        if self._token_manager.verify(packet.get("token")):
            connection.authenticated = True
            logging.info(f"Client {connection.cid} authenticated")
            await self._send(connection, {
                "type": "authResult",
                "success": True,
                "message": "Authentication successful",
            })
            await self._send_status(connection)
        else:
            logging.warning(f"Invalid auth token from {connection.cid} ({connection.remote_address})")
            await self._send(connection, {
                "type": "authResult",
                "success": False,
                "message": "Invalid authentication token",
            })

    async def _handle_packet(self, connection: Connection, packet: dict) -> None:
        command = packet["type"]
        if command == "ping":
            await self._send(connection, {"type": "pong", "timestamp": int(time.time() * 1000)})
        elif command == "status":
            await self._send_status(connection)
        elif command == "listFiles":
            await self._send(connection, {
                "type": "fileList",
                "files": [file.to_dict() for file in self._manager.list_files()],
            })
        elif command == "openFile":
            file_path = packet.get("filePath")
            if not isinstance(file_path, str) or not file_path:
                raise CommandError("filePath parameter required")
            async with self._command_lock:
                result = await self._manager.open_file(file_path)
                await self._send(connection, {
                    "type": "fileOpened",
                    "success": result.success,
                    "message": result.message,
                    "filePath": file_path,
                })
                await self.broadcast_status()
        elif command in SESSION_COMMANDS:
            async with self._command_lock:
                await SESSION_COMMANDS[command](self._manager)
                await self._send(connection, {"type": "commandResult", "command": command, "success": True})
                await self.broadcast_status()
        else:
            raise CommandError(f"Unknown command: {command}")

    async def _send(self, connection: Connection, packet: dict):
        try:
            await connection.websocket.send(json.dumps(packet))
        except websockets.exceptions.ConnectionClosed:
            logging.debug(f"Wanted to send {packet['type']} to closed connection {connection.cid}")

    async def _send_error(self, connection: Connection, message: str):
        await self._send(connection, {"type": "error", "message": message})

    async def _send_status(self, connection: Connection):
        status = await self._manager.get_status()
        await self._send(connection, {"type": "status", **status})

    def broadcast(self, packet: dict):
        recipients = [connection.websocket for connection in self._data.authenticated_connections()]
        if recipients:
            broadcast(recipients, json.dumps(packet))

    async def broadcast_status(self):
        status = await self._manager.get_status()
        self.broadcast({"type": "status", **status})

    async def broadcast_folder_changed(self, folder, files):
        self.broadcast({
            "type": "folderChanged",
            "folder": folder,
            "files": [file.to_dict() for file in files],
        })

    async def rotate_token(self) -> str:
        token = self._token_manager.regenerate_token()
        stale = self._data.authenticated_connections()
        logging.info(f"Disconnecting {len(stale)} clients due to token regeneration")
        for connection in stale:
            connection.authenticated = False
            self._data.connections.pop(connection.cid, None)
        await asyncio.gather(*(self._disconnect(connection) for connection in stale))
        return token

    async def _disconnect(self, connection: Connection):
        await self._send(connection, {
            "type": "tokenChanged",
            "message": "Authentication token has been regenerated. Please reconnect with the new token.",
        })
        await connection.websocket.close(TOKEN_CHANGED_CLOSE_CODE, "Authentication token regenerated")

    async def check_connections(self):
        now = time.monotonic()
        for cid, connection in list(self._data.connections.items()):
            if not connection.is_open:
                logging.debug(f"Pruning dead connection {cid}")
                del self._data.connections[cid]
            elif now - connection.last_activity > self._heartbeat_interval:
                try:
                    await connection.websocket.ping()
                except websockets.exceptions.ConnectionClosed:
                    logging.debug(f"Ping to {cid} failed, connection closed")
                    continue
                connection.touch()
        logging.debug(f"Heartbeat: {self.connection_count} connections open")

    async def _heartbeat(self):
        while True:
            await asyncio.sleep(self._heartbeat_check_interval)
            await self.check_connections()

    async def __aenter__(self):
        logging.debug(f"Starting websocket server")
        self._server = await serve(self.handler, self._host, self._port, ping_interval=None)
        self._heartbeat_task = asyncio.create_task(self._heartbeat())
        logging.info(f"WebSocket server listening on port {self.port}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        logging.debug(f"Stopping websocket server")
        self._data.shutdown_event.set()
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            await asyncio.wait([self._heartbeat_task])
            self._heartbeat_task = None
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        logging.info("WebSocket server stopped")
