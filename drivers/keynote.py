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

from drivers.applescript import AppleScriptDriver, quote
from drivers.base import OpenResult, SlideInfo

SLIDE_COUNT = """
tell application "Keynote"
    if (count of documents) > 0 then
        tell the front document
            return count of slides
        end tell
    else
        return 0
    end if
end tell
"""

CURRENT_SLIDE = """
tell application "Keynote"
    tell the front document
        try
            return slide number of current slide
        on error
            return 1
        end try
    end tell
end tell
"""


class KeynoteDriver(AppleScriptDriver):
    driver_type = "keynote"
    app_name = "Keynote"

    async def open_file(self, path: str) -> OpenResult:
        return await self._open(f"""
            tell application "Keynote"
                activate
                open POSIX file {quote(path)}
                return name of the front document
            end tell
        """)

    async def start_presentation(self) -> None:
        await self._act("""
            tell application "Keynote"
                tell the front document to start
            end tell
        """, "start presentation")

    async def stop_presentation(self) -> None:
        await self._act("""
            tell application "Keynote"
                stop the front document
            end tell
        """, "stop presentation")

    async def close_presentation(self) -> None:
        await self._act("""
            tell application "Keynote"
                if (count of documents) > 0 then
                    try
                        stop the front document
                    end try
                    close the front document
                end if
            end tell
        """, "close presentation")
        self.document_name = None

    async def next_slide(self) -> None:
        await self._act("""
            tell application "Keynote"
                activate
                if (count of documents) > 0 then
                    show next
                end if
            end tell
        """, "go to next slide")

    async def prev_slide(self) -> None:
        await self._act("""
            tell application "Keynote"
                activate
                if (count of documents) > 0 then
                    show previous
                end if
            end tell
        """, "go to previous slide")

    async def get_current_slide_info(self) -> SlideInfo:
        return await self._slide_info(SLIDE_COUNT, CURRENT_SLIDE)

    async def get_slide_notes(self, slide_number: int) -> str:
        notes = await self._query(f"""
            tell application "Keynote"
                tell the front document
                    try
                        set slideNotes to presenter notes of slide {int(slide_number)}
                        if slideNotes is missing value then return ""
                        return slideNotes
                    on error
                        return ""
                    end try
                end tell
            end tell
        """)
        return notes or ""
