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
from pathlib import Path

import aiofiles
import tomlkit
import tomlkit.exceptions
import voluptuous.error
from voluptuous import Schema, Required, Optional, Any, All, Range, Length

Seconds = All(Any(int, float), Range(min=0, min_included=False))

CONFIG_SCHEMA = Schema({
    Required('server'): {
        Required('name'): All(str, Length(min=1)),
        Optional('websocket_host'): str,
        Required('websocket_port'): All(int, Range(min=0, max=65535)),
        Optional('heartbeat_interval'): Seconds,
        Optional('heartbeat_check_interval'): Seconds,
    },
    Optional('drivers'): {
        Optional('timeout'): Seconds,
        Optional('keynote'): {Optional('live_slide_info'): bool},
        Optional('powerpoint'): {Optional('live_slide_info'): bool},
    },
    Optional('presentations'): {
        Optional('folder'): str,
    },
    Optional('mdns'): {
        Optional('enabled'): bool,
    },
})

SECRETS_SCHEMA = Schema({
    Required('server'): {
        Optional('auth_token'): All(str, Length(min=8, max=8)),
        Optional('token_generated_at'): str,
    },
})


class ConfigurationLoadError(Exception): pass


class Config:
    config: tomlkit.TOMLDocument
    secrets: tomlkit.TOMLDocument
    secrets_opened: bool = False
    config_opened: bool = False

    def __init__(self, config_location: Path, secrets_location: Path):
        self.config_location = Path(config_location)
        self.secrets_location = Path(secrets_location)

        self.config_schema = CONFIG_SCHEMA
        self.secrets_schema = SECRETS_SCHEMA

    async def initialize(self):
        self.config = await self._read_document(self.config_location, self.config_schema, "Configuration")
        self.config_opened = True
        logging.debug(f"Loaded Configuration")

        self.secrets = await self._read_document(self.secrets_location, self.secrets_schema, "Secrets")
        self.secrets_opened = True
        logging.debug(f"Loaded Secrets")
        logging.info(f"Configuration loaded.")

    @staticmethod
    async def _read_document(location: Path, schema: Schema, kind: str) -> tomlkit.TOMLDocument:
        try:
            async with aiofiles.open(location, 'r') as document_file:
                file_data = await document_file.read()
            document = tomlkit.parse(file_data)
            logging.debug(f"Loaded {kind} without toml format error")
            logging.debug("Validating against Schema.")
            schema(document.unwrap())
            logging.debug("Validated against Schema.")
            return document
        except FileNotFoundError as e:
            logging.exception(e)
            logging.warning(
                f"Could not find {location}. Copy from .example/{location.name} to {location}")
            raise ConfigurationLoadError() from e
        except IOError as e:
            logging.exception(e)
            logging.warning(f"Could not open file {location}")
            raise ConfigurationLoadError() from e
        except tomlkit.exceptions.ParseError as e:
            logging.exception(e)
            logging.warning(f"{kind} in {location} is invalid")
            raise ConfigurationLoadError() from e
        except voluptuous.error.MultipleInvalid as e:
            logging.exception(e)
            logging.warning(f"{kind} in {location} does not match expected format")
            logging.warning(f"Issue configuration item: {e.path}")
            raise ConfigurationLoadError() from e

    async def save_config(self):
        if self.config_opened is True:
            async with aiofiles.open(self.config_location, 'w') as config_file:
                await config_file.write(tomlkit.dumps(self.config))
            logging.debug("Config file saved to disk.")

    async def save_secrets(self):
        if self.secrets_opened is True:
            async with aiofiles.open(self.secrets_location, 'w') as secrets_file:
                await secrets_file.write(tomlkit.dumps(self.secrets))
            logging.debug("Secrets file saved to disk.")

    async def close(self):
        await self.save_config()
        await self.save_secrets()
        logging.info(f"Configuration Saved.")
