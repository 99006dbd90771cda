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

import abc
import dataclasses
from typing import Optional


class DriverError(Exception): pass


@dataclasses.dataclass
class OpenResult:
    success: bool
    message: str
    document_name: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class SlideInfo:
    current_slide: int  # 1-based
    total_slides: int


UNKNOWN_SLIDE_INFO = SlideInfo(current_slide=1, total_slides=0)


class PresentationDriver(abc.ABC):
    """
    Everything the session manager needs from one presentation application.

    Write operations (start, stop, close, next, prev) raise DriverError on failure.
    Read operations (slide info, notes) never raise: they degrade to UNKNOWN_SLIDE_INFO and "".

    Optional capabilities are advertised through the supports_* flags and must be checked
    before calling get_slide_list or goto_slide.
    """
    driver_type: str = ""
    supports_live_slide_info: bool = False
    supports_slide_list: bool = False
    supports_goto_slide: bool = False

    def __init__(self, live_slide_info: Optional[bool] = None):
        if live_slide_info is not None:
            self.supports_live_slide_info = bool(live_slide_info)

    @abc.abstractmethod
    async def open_file(self, path: str) -> OpenResult: ...

    @abc.abstractmethod
    async def start_presentation(self) -> None: ...

    @abc.abstractmethod
    async def stop_presentation(self) -> None: ...

    @abc.abstractmethod
    async def close_presentation(self) -> None: ...

    @abc.abstractmethod
    async def next_slide(self) -> None: ...

    @abc.abstractmethod
    async def prev_slide(self) -> None: ...

    @abc.abstractmethod
    async def get_current_slide_info(self) -> SlideInfo: ...

    @abc.abstractmethod
    async def get_slide_notes(self, slide_number: int) -> str: ...

    async def get_slide_list(self) -> list[dict]:
        raise NotImplementedError(f"{self.driver_type} driver cannot list slides")

    async def goto_slide(self, slide_number: int) -> None:
        raise NotImplementedError(f"{self.driver_type} driver cannot jump to a slide")

    def __repr__(self):
        return f"<{type(self).__name__} {self.driver_type}>"
