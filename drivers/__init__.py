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

from drivers.applescript import AppleScriptRunner, DEFAULT_TIMEOUT
from drivers.base import PresentationDriver, DriverError, OpenResult, SlideInfo
from drivers.keynote import KeynoteDriver
from drivers.powerpoint import PowerPointDriver

# extension -> application type tag; files with any other extension are ignored
DRIVER_TYPES = {
    ".key": "keynote",
    ".pptx": "powerpoint",
    ".ppt": "powerpoint",
}

DRIVER_CLASSES = {
    "keynote": KeynoteDriver,
    "powerpoint": PowerPointDriver,
}


def create_drivers(driver_config=None) -> dict[str, PresentationDriver]:
    driver_config = driver_config or {}
    runner = AppleScriptRunner(timeout=float(driver_config.get("timeout", DEFAULT_TIMEOUT)))
    return {
        driver_type: driver_class(runner, live_slide_info=driver_config.get(driver_type, {}).get("live_slide_info"))
        for driver_type, driver_class in DRIVER_CLASSES.items()
    }


__all__ = [
    "DRIVER_TYPES", "DRIVER_CLASSES", "create_drivers",
    "PresentationDriver", "DriverError", "OpenResult", "SlideInfo",
]
