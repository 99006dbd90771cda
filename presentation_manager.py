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
import logging
from typing import Optional

from drivers import PresentationDriver, OpenResult
from file_registry import FileRegistry, PresentationFile


class PresentationError(Exception): pass


class NoPresentationError(PresentationError):

    def __init__(self):
        super().__init__("No presentation is currently open")


@dataclasses.dataclass
class Session:
    """
    the single active (driver, file) pairing; an empty Session has no driver, no file and is not presenting
    """
    driver: Optional[PresentationDriver] = None
    file: Optional[PresentationFile] = None
    is_presenting: bool = False
    current_slide_index: int = 0  # 0-based, reported 1-based
    total_slides: int = 0
    slide_notes: str = ""


class PresentationManager:

    def __init__(self, registry: FileRegistry, drivers: dict[str, PresentationDriver]):
        self._registry = registry
        self._drivers = drivers
        self._session = Session()
        # one command at a time, so a slow driver call cannot interleave with the next one
        self._command_lock = asyncio.Lock()

    @property
    def registry(self) -> FileRegistry:
        return self._registry

    @property
    def session(self) -> Session:
        return self._session

    def list_files(self) -> tuple[PresentationFile, ...]:
        return self._registry.list_files()

    def get_driver(self, file_type: str) -> Optional[PresentationDriver]:
        return self._drivers.get(file_type)

    def _require_session(self) -> PresentationDriver:
        if self._session.driver is None:
            raise NoPresentationError()
        return self._session.driver

    def _reset_session(self):
        self._session = Session()

    async def open_file(self, path: str) -> OpenResult:
        async with self._command_lock:
            return await self._open_file(path)

    async def _open_file(self, path: str) -> OpenResult:
        try:
            if not await self._registry.validate_exists(path):
                return OpenResult(False, "File not found or invalid")

            file = self._registry.find(path)
            if file is None:
                return OpenResult(False, "File not in current folder")

            driver = self.get_driver(file.type)
            if driver is None:
                return OpenResult(False, "Unsupported file type")

            result = await driver.open_file(file.path)
        except Exception as e:
            logging.exception(e)
            return OpenResult(False, str(e) or type(e).__name__)

        if not result.success:
            logging.warning(f"Could not open {file.name}: {result.message}")
            return result

        self._registry.select_by_path(file.path)
        self._session = Session(driver=driver, file=file)
        await self._update_presentation_info()
        logging.info(f"Opened file: {file.name} with {file.type} driver")
        return result

    async def start_presentation(self):
        async with self._command_lock:
            driver = self._require_session()
            await driver.start_presentation()
            self._session.is_presenting = True
            await self._update_presentation_info()
            logging.info("Presentation started")

    async def stop_presentation(self):
        async with self._command_lock:
            driver = self._require_session()
            await driver.stop_presentation()
            self._session.is_presenting = False
            await self._update_presentation_info()
            logging.info("Presentation stopped")

    async def close_presentation(self):
        async with self._command_lock:
            driver = self._require_session()
            await driver.close_presentation()
            self._reset_session()
            logging.info("Presentation closed")

    async def next_slide(self):
        async with self._command_lock:
            driver = self._require_session()
            await driver.next_slide()
            await self._update_presentation_info()
            logging.info(f"Advanced to slide {self._session.current_slide_index + 1}")

    async def prev_slide(self):
        async with self._command_lock:
            driver = self._require_session()
            await driver.prev_slide()
            await self._update_presentation_info()
            logging.info(f"Went back to slide {self._session.current_slide_index + 1}")

    async def update_presentation_info(self):
        async with self._command_lock:
            await self._update_presentation_info()

    async def _update_presentation_info(self):
        session = self._session
        if session.driver is None:
            return

        try:
            slide_info = await session.driver.get_current_slide_info()
        except Exception as e:
            logging.error(f"Error updating presentation info: {e}")
            return
        session.current_slide_index = slide_info.current_slide - 1
        session.total_slides = slide_info.total_slides

        try:
            session.slide_notes = await session.driver.get_slide_notes(slide_info.current_slide)
        except Exception as e:
            logging.debug(f"Slide notes unavailable: {e}")
            session.slide_notes = ""

    async def get_status(self) -> dict:
        async with self._command_lock:
            session = self._session
            current_slide = session.current_slide_index + 1
            total_slides = session.total_slides

            # only poll the application while it is presenting; otherwise the cache is current
            if session.driver is not None and session.is_presenting and session.driver.supports_live_slide_info:
                try:
                    slide_info = await session.driver.get_current_slide_info()
                    current_slide, total_slides = slide_info.current_slide, slide_info.total_slides
                except Exception as e:
                    logging.error(f"Error getting live slide info: {e}")

            current_file = None
            if session.file is not None:
                current_file = {
                    "name": session.file.name,
                    "path": session.file.path,
                    "type": session.file.type,
                    "index": self._registry.index_of(session.file.path),
                }

            return {
                "currentFile": current_file,
                "isPresenting": session.is_presenting,
                "currentSlide": current_slide,
                "totalSlides": total_slides,
                "slideNotes": session.slide_notes,
                "folder": self._registry.folder,
                "fileCount": self._registry.file_count,
                "driverType": session.driver.driver_type if session.driver is not None else None,
            }

    async def get_slide_notes(self, slide_number: Optional[int] = None) -> str:
        async with self._command_lock:
            driver = self._require_session()
            return await driver.get_slide_notes(slide_number or self._session.current_slide_index + 1)

    async def get_slide_list(self) -> list[dict]:
        async with self._command_lock:
            driver = self._require_session()
            if driver.supports_slide_list:
                return await driver.get_slide_list()
            return [
                {"index": index, "title": f"Slide {index}", "notes": ""}
                for index in range(1, self._session.total_slides + 1)
            ]

    async def open_next_file(self) -> OpenResult:
        async with self._command_lock:
            file = self._registry.advance()
            if file is None:
                return OpenResult(False, "No next file available")
            return await self._open_file(file.path)

    async def open_prev_file(self) -> OpenResult:
        async with self._command_lock:
            file = self._registry.retreat()
            if file is None:
                return OpenResult(False, "No previous file available")
            return await self._open_file(file.path)

    async def open_file_by_index(self, index: int) -> OpenResult:
        async with self._command_lock:
            file = self._registry.select_by_index(index)
            if file is None:
                return OpenResult(False, "Invalid file index")
            return await self._open_file(file.path)

    async def set_folder(self, folder: str):
        async with self._command_lock:
            await self._registry.set_folder(folder)
            # the open file may no longer belong to the current folder
            self._reset_session()

    async def clear_folder(self):
        async with self._command_lock:
            await self._registry.clear()
            self._reset_session()

    async def close(self):
        await self._registry.close()
