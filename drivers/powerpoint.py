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

from drivers.applescript import AppleScriptDriver, quote, parse_int
from drivers.base import OpenResult, SlideInfo

SLIDE_COUNT = """
tell application "Microsoft PowerPoint"
    try
        if (count of presentations) > 0 then
            return count of slides of active presentation
        end if
    end try
    return 0
end tell
"""

CURRENT_SLIDE = """
tell application "Microsoft PowerPoint"
    try
        return slide index of slide of slide show view of slide show window 1 of active presentation
    on error
        return 1
    end try
end tell
"""

PRESENTER_NOTES = """
tell application "Microsoft PowerPoint"
    try
        return notes text of presenter tool of presenter view window 1 of active presentation
    on error
        return ""
    end try
end tell
"""


class PowerPointDriver(AppleScriptDriver):
    """
    PowerPoint reports the slide shown in the slide show window directly, so live polling is cheap
    enough to be on by default.
    """
    driver_type = "powerpoint"
    app_name = "Microsoft PowerPoint"
    supports_live_slide_info = True
    supports_slide_list = True

    async def open_file(self, path: str) -> OpenResult:
        return await self._open(f"""
            tell application "Microsoft PowerPoint"
                activate
                open POSIX file {quote(path)}
                return name of the active presentation
            end tell
        """)

    async def start_presentation(self) -> None:
        await self._act("""
            tell application "Microsoft PowerPoint"
                activate
                tell slide show settings of active presentation
                    set show with presenter to true
                end tell
                run slide show slide show settings of active presentation
            end tell
        """, "start presentation")

    async def stop_presentation(self) -> None:
        await self._act("""
            tell application "Microsoft PowerPoint"
                activate
                exit slide show slide show view of slide show window 1
            end tell
        """, "stop presentation")

    async def close_presentation(self) -> None:
        await self._act("""
            tell application "Microsoft PowerPoint"
                set thePresentation to presentation 1
                try
                    exit slide show slide show view of slide show window 1
                end try
                close thePresentation
            end tell
        """, "close presentation")
        self.document_name = None

    async def next_slide(self) -> None:
        await self._act("""
            tell application "Microsoft PowerPoint"
                activate
                go to next slide slide show view of slide show window 1
            end tell
        """, "go to next slide")

    async def prev_slide(self) -> None:
        await self._act("""
            tell application "Microsoft PowerPoint"
                activate
                go to previous slide slide show view of slide show window 1
            end tell
        """, "go to previous slide")

    async def get_current_slide_info(self) -> SlideInfo:
        return await self._slide_info(SLIDE_COUNT, CURRENT_SLIDE)

    async def get_slide_notes(self, slide_number: int) -> str:
        # presenter view only exposes the notes of the slide on screen
        return await self._query(PRESENTER_NOTES) or ""

    async def get_total_slides(self) -> int:
        return parse_int(await self._query(SLIDE_COUNT) or "0", 0)

    async def get_slide_list(self) -> list[dict]:
        total = await self.get_total_slides()
        return [{"index": index, "title": f"Slide {index}", "notes": ""} for index in range(1, total + 1)]
