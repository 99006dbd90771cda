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
import re
from typing import Optional

from drivers.base import DriverError, OpenResult, PresentationDriver, SlideInfo, UNKNOWN_SLIDE_INFO

DEFAULT_TIMEOUT = 10.0

_POSITION_PREFIX = re.compile(r"^[0-9]+:[0-9]+:\s*")
_EXECUTION_ERROR = re.compile(r"execution error:\s*", re.IGNORECASE)


class AppleScriptError(Exception): pass


def clean_error_message(output: str) -> str:
    """
    osascript reports errors as "12:34: execution error: <reason> (-1728)"
    """
    message = _POSITION_PREFIX.sub("", output.strip())
    message = _EXECUTION_ERROR.sub("", message)
    return message.strip()


def quote(value: str) -> str:
    """
    make value safe inside an AppleScript string literal
    """
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def parse_int(output: str, default: int) -> int:
    try:
        return int(output.strip())
    except ValueError:
        return default


class AppleScriptRunner:

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, executable: str = "osascript"):
        self._timeout = timeout
        self._executable = executable

    @property
    def timeout(self) -> float:
        return self._timeout

    async def run(self, script: str) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                self._executable, "-e", script,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise AppleScriptError(f"Could not run {self._executable}: {e}") from e

        # the script keeps running after a timeout, only the caller stops waiting
        communicate = asyncio.ensure_future(process.communicate())
        try:
            output, _ = await asyncio.wait_for(asyncio.shield(communicate), self._timeout)
        except asyncio.TimeoutError as e:
            logging.warning(f"AppleScript did not finish within {self._timeout}s")
            raise AppleScriptError(f"Timed out after {self._timeout:g} seconds") from e

        text = output.decode("utf-8", errors="replace")
        if process.returncode != 0:
            raise AppleScriptError(clean_error_message(text) or f"{self._executable} exited with {process.returncode}")
        return text.strip()


class AppleScriptDriver(PresentationDriver):
    """
    shared plumbing for drivers that talk to their application through osascript
    """
    app_name: str = ""

    def __init__(self, runner: AppleScriptRunner, live_slide_info: Optional[bool] = None):
        super().__init__(live_slide_info=live_slide_info)
        self._runner = runner
        self.document_name: Optional[str] = None

    async def _act(self, script: str, action: str) -> str:
        try:
            return await self._runner.run(script)
        except AppleScriptError as e:
            logging.error(f"{self.app_name} failed to {action}: {e}")
            raise DriverError(f"Failed to {action}: {e}") from e

    async def _query(self, script: str) -> Optional[str]:
        try:
            return await self._runner.run(script)
        except AppleScriptError as e:
            logging.debug(f"{self.app_name} query failed: {e}")
            return None

    async def _open(self, script: str) -> OpenResult:
        try:
            name = await self._runner.run(script)
        except AppleScriptError as e:
            logging.error(f"{self.app_name} failed to open file: {e}")
            return OpenResult(False, f"Failed to open file: {e}")
        self.document_name = name
        return OpenResult(True, f"Opened {name} in {self.app_name}", document_name=name)

    async def _slide_info(self, count_script: str, current_script: str) -> SlideInfo:
        total = await self._query(count_script)
        if total is None:
            return UNKNOWN_SLIDE_INFO
        current = await self._query(current_script)
        return SlideInfo(
            current_slide=max(parse_int(current, 1), 1) if current is not None else 1,
            total_slides=max(parse_int(total, 0), 0),
        )
