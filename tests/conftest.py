"""
Shared fixtures: a presentation folder on disk, scriptable drivers and an in-memory token.
"""

import os
from pathlib import Path
from typing import Optional

import pytest
import pytest_asyncio

from drivers import PresentationDriver, DriverError, OpenResult, SlideInfo
from file_registry import FileRegistry
from presentation_manager import PresentationManager
from token_manager import TokenManager

TEST_TOKEN = "abcd1234"


class FakeDriver(PresentationDriver):
    """Driver double that records calls and fails on request."""

    def __init__(self, driver_type: str, total_slides: int = 5, live_slide_info: Optional[bool] = None,
                 notes: Optional[dict] = None):
        self.driver_type = driver_type
        super().__init__(live_slide_info=live_slide_info)
        self.total_slides = total_slides
        self.current_slide = 1
        self.notes = notes or {}
        self.calls = []
        self.failing = set()
        self.open_error: Optional[Exception] = None
        self.notes_error: Optional[Exception] = None

    def _write(self, name: str):
        self.calls.append(name)
        if name in self.failing:
            raise DriverError(f"Failed to {name.replace('_', ' ')}: application not responding")

    async def open_file(self, path: str) -> OpenResult:
        self.calls.append(("open_file", path))
        if self.open_error is not None:
            raise self.open_error
        if "open_file" in self.failing:
            return OpenResult(False, "Failed to open file: application not responding")
        self.current_slide = 1
        name = os.path.basename(path)
        return OpenResult(True, f"Opened {name}", document_name=name)

    async def start_presentation(self):
        self._write("start_presentation")

    async def stop_presentation(self):
        self._write("stop_presentation")

    async def close_presentation(self):
        self._write("close_presentation")

    async def next_slide(self):
        self._write("next_slide")
        self.current_slide = min(self.current_slide + 1, self.total_slides)

    async def prev_slide(self):
        self._write("prev_slide")
        self.current_slide = max(self.current_slide - 1, 1)

    async def get_current_slide_info(self) -> SlideInfo:
        self.calls.append("get_current_slide_info")
        return SlideInfo(self.current_slide, self.total_slides)

    async def get_slide_notes(self, slide_number: int) -> str:
        self.calls.append(("get_slide_notes", slide_number))
        if self.notes_error is not None:
            raise self.notes_error
        return self.notes.get(slide_number, "")


def make_files(folder: Path, *names: str) -> Path:
    for name in names:
        (folder / name).write_bytes(b"presentation")
    return folder


@pytest.fixture
def presentation_folder(tmp_path: Path) -> Path:
    """Folder with three presentations plus files the registry must ignore."""
    folder = tmp_path / "talks"
    folder.mkdir()
    make_files(folder, "c.ppt", "a.key", "b.pptx", "notes.txt", ".hidden.key")
    (folder / "nested").mkdir()
    make_files(folder / "nested", "d.key")
    (folder / "folder.key").mkdir()
    return folder


@pytest_asyncio.fixture
async def registry():
    file_registry = FileRegistry()
    yield file_registry
    await file_registry.close()


@pytest.fixture
def drivers() -> dict:
    return {
        "keynote": FakeDriver("keynote", notes={1: "Welcome", 2: "Agenda"}),
        "powerpoint": FakeDriver("powerpoint", total_slides=8, live_slide_info=True),
    }


@pytest_asyncio.fixture
async def manager(registry, drivers, presentation_folder):
    presentation_manager = PresentationManager(registry, drivers)
    await presentation_manager.set_folder(str(presentation_folder))
    return presentation_manager


@pytest.fixture
def token_manager() -> TokenManager:
    return TokenManager({"server": {"auth_token": TEST_TOKEN}})
