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
import datetime
import logging
import os
import stat
from typing import Awaitable, Callable, Iterable, Optional

import aiofiles.os
from watchfiles import awatch, Change, DefaultFilter

from drivers import DRIVER_TYPES


@dataclasses.dataclass(frozen=True)
class PresentationFile:
    name: str
    path: str
    extension: str
    size: int
    modified: datetime.datetime
    type: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": self.path,
            "extension": self.extension,
            "size": self.size,
            "modified": self.modified.isoformat(),
            "type": self.type,
        }


def presentation_type(name: str) -> Optional[str]:
    if name.startswith("."):
        return None
    return DRIVER_TYPES.get(os.path.splitext(name)[1].lower())


class PresentationFilter(DefaultFilter):
    """
    drops dotfiles and anything that is not a presentation; the watch itself is not recursive
    """

    def __call__(self, change: Change, path: str) -> bool:
        return (presentation_type(os.path.basename(path)) is not None
                and super().__call__(change, path))


FolderListener = Callable[[Optional[str], tuple], Awaitable[None]]


class FileRegistry:

    def __init__(self, on_change: Optional[FolderListener] = None):
        self.on_change = on_change
        self._folder: Optional[str] = None
        self._files: tuple[PresentationFile, ...] = ()
        self._current_index = -1
        self._watch_task: Optional[asyncio.Task] = None
        self._stop_watching: Optional[asyncio.Event] = None

    @property
    def folder(self) -> Optional[str]:
        return self._folder

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def file_count(self) -> int:
        return len(self._files)

    async def set_folder(self, folder: str):
        await self._stop_watch()
        self._folder = os.path.abspath(folder)
        self._current_index = -1
        await self.scan()
        self._start_watch()
        logging.info(f"Presentation folder set to {self._folder} ({len(self._files)} presentation files)")

    async def clear(self):
        await self._stop_watch()
        self._folder = None
        self._files = ()
        self._current_index = -1
        logging.info("Presentation folder cleared")

    async def close(self):
        await self._stop_watch()

    async def scan(self):
        folder = self._folder
        if folder is None:
            self._files = ()
            self._current_index = -1
            return

        selected = self.current_file()
        try:
            files = await self._read_folder(folder)
        except OSError as e:
            logging.error(f"Could not scan {folder}: {e}")
            files = []

        if folder != self._folder:  # folder changed while scanning
            return

        self._files = tuple(sorted(files, key=lambda file: (file.name.casefold(), file.name)))
        self._current_index = self.index_of(selected.path) if selected is not None else -1
        logging.debug(f"Scanned {folder}: {[file.name for file in self._files]}")

    @staticmethod
    async def _read_folder(folder: str) -> list[PresentationFile]:
        files: dict[str, PresentationFile] = {}
        for name in await aiofiles.os.listdir(folder):
            file_type = presentation_type(name)
            if file_type is None:
                continue
            path = os.path.join(folder, name)
            try:
                stats = await aiofiles.os.stat(path)
            except FileNotFoundError:
                continue  # removed between listdir and stat
            if not stat.S_ISREG(stats.st_mode):
                continue
            files[path] = PresentationFile(
                name=name,
                path=path,
                extension=os.path.splitext(name)[1].lower(),
                size=stats.st_size,
                modified=datetime.datetime.fromtimestamp(stats.st_mtime, tz=datetime.timezone.utc),
                type=file_type,
            )
        return list(files.values())

    def _start_watch(self):
        self._stop_watching = asyncio.Event()
        self._watch_task = asyncio.create_task(self._watch(self._folder, self._stop_watching))

    async def _stop_watch(self):
        if self._watch_task is None:
            return
        self._stop_watching.set()
        await asyncio.wait([self._watch_task])
        self._watch_task = None
        self._stop_watching = None

    async def _watch(self, folder: str, stop_event: asyncio.Event):
        try:
            async for changes in awatch(folder, watch_filter=PresentationFilter(),
                                        recursive=False, stop_event=stop_event):
                await self.handle_changes(changes)
        except OSError as e:
            logging.warning(f"Stopped watching {folder}: {e}")
        logging.debug(f"No longer watching {folder}")

    async def handle_changes(self, changes: Iterable[tuple[Change, str]]):
        for change, path in changes:
            logging.info(f"Presentation file {change.name}: {path}")
        await self.scan()
        if self.on_change is not None:
            try:
                await self.on_change(self._folder, self.list_files())
            except Exception as e:
                logging.exception(e)

    def list_files(self) -> tuple[PresentationFile, ...]:
        return self._files

    def current_file(self) -> Optional[PresentationFile]:
        if 0 <= self._current_index < len(self._files):
            return self._files[self._current_index]
        return None

    def index_of(self, path: str) -> int:
        path = os.path.abspath(path)
        for index, file in enumerate(self._files):
            if file.path == path:
                return index
        return -1

    def find(self, path: str) -> Optional[PresentationFile]:
        index = self.index_of(path)
        return self._files[index] if index >= 0 else None

    def select_by_path(self, path: str) -> Optional[PresentationFile]:
        index = self.index_of(path)
        if index < 0:
            return None
        self._current_index = index
        return self._files[index]

    def select_by_index(self, index: int) -> Optional[PresentationFile]:
        if not 0 <= index < len(self._files):
            return None
        self._current_index = index
        return self._files[index]

    def advance(self) -> Optional[PresentationFile]:
        if not self._files:
            return None
        self._current_index = (self._current_index + 1) % len(self._files)
        return self._files[self._current_index]

    def retreat(self) -> Optional[PresentationFile]:
        if not self._files:
            return None
        self._current_index = len(self._files) - 1 if self._current_index <= 0 else self._current_index - 1
        return self._files[self._current_index]

    @staticmethod
    async def validate_exists(path: str) -> bool:
        return await aiofiles.os.path.isfile(path)
