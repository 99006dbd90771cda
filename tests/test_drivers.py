"""
Tests for the AppleScript bridge and the Keynote and PowerPoint drivers.
"""

import asyncio

import pytest

from drivers import create_drivers, DriverError, SlideInfo
from drivers.applescript import AppleScriptRunner, AppleScriptError, clean_error_message, quote, parse_int
from drivers.base import UNKNOWN_SLIDE_INFO
from drivers.keynote import KeynoteDriver
from drivers.powerpoint import PowerPointDriver


class FakeRunner:
    """Answers scripts by the first matching fragment; exceptions are raised."""

    def __init__(self, answers=None):
        self.answers = list((answers or {}).items())
        self.scripts = []

    async def run(self, script: str) -> str:
        self.scripts.append(script)
        for fragment, answer in self.answers:
            if fragment in script:
                if isinstance(answer, Exception):
                    raise answer
                return answer
        return ""


class FakeProcess:

    def __init__(self, output: bytes = b"", returncode: int = 0, delay: float = 0):
        self.output = output
        self.returncode = returncode
        self.delay = delay

    async def communicate(self):
        await asyncio.sleep(self.delay)
        return self.output, None


def fake_exec(process, calls=None):
    async def create_subprocess_exec(*args, **kwargs):
        if calls is not None:
            calls.append(args)
        return process
    return create_subprocess_exec


class TestHelpers:
    """Output parsing helpers."""

    def test_clean_error_message(self):
        output = "12:58: execution error: Keynote got an error: Can't get document 1. (-1728)\n"
        assert clean_error_message(output) == "Keynote got an error: Can't get document 1. (-1728)"

    def test_clean_plain_message(self):
        assert clean_error_message("  syntax error  ") == "syntax error"

    def test_quote_escapes(self):
        assert quote('/Users/me/My "Big" Talk.key') == '"/Users/me/My \\"Big\\" Talk.key"'
        assert quote("C:\\talks") == '"C:\\\\talks"'

    def test_parse_int(self):
        assert parse_int(" 12\n", 0) == 12
        assert parse_int("missing value", 7) == 7


class TestRunner:
    """Running scripts through osascript."""

    @pytest.mark.asyncio
    async def test_success(self, monkeypatch):
        """Output is decoded and stripped, the script goes in as -e."""
        calls = []
        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec(FakeProcess(b"Deck.key\n"), calls))

        assert await AppleScriptRunner().run("return 1") == "Deck.key"
        assert calls == [("osascript", "-e", "return 1")]

    @pytest.mark.asyncio
    async def test_error_exit(self, monkeypatch):
        """Non-zero exits raise with the cleaned message."""
        process = FakeProcess(b"0:5: execution error: Keynote got an error. (-1708)\n", returncode=1)
        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec(process))

        with pytest.raises(AppleScriptError, match=r"^Keynote got an error\. \(-1708\)$"):
            await AppleScriptRunner().run("bad")

    @pytest.mark.asyncio
    async def test_silent_error_exit(self, monkeypatch):
        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec(FakeProcess(b"", returncode=2)))

        with pytest.raises(AppleScriptError, match="exited with 2"):
            await AppleScriptRunner().run("bad")

    @pytest.mark.asyncio
    async def test_timeout(self, monkeypatch):
        """Slow scripts fail after the configured timeout."""
        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec(FakeProcess(b"late", delay=0.2)))
        runner = AppleScriptRunner(timeout=0.01)

        with pytest.raises(AppleScriptError, match="Timed out after 0.01 seconds"):
            await runner.run("delay 10")
        await asyncio.sleep(0.3)  # let the abandoned script finish

    @pytest.mark.asyncio
    async def test_missing_executable(self):
        runner = AppleScriptRunner(executable="/nonexistent/osascript")

        with pytest.raises(AppleScriptError, match="Could not run"):
            await runner.run("return 1")


class TestKeynoteDriver:
    """Keynote driver over a scripted runner."""

    @pytest.mark.asyncio
    async def test_open_success(self):
        runner = FakeRunner({"open POSIX file": "Quarterly.key"})
        driver = KeynoteDriver(runner)

        result = await driver.open_file("/talks/Quarterly.key")

        assert result.success
        assert result.message == "Opened Quarterly.key in Keynote"
        assert driver.document_name == "Quarterly.key"
        assert 'open POSIX file "/talks/Quarterly.key"' in runner.scripts[0]

    @pytest.mark.asyncio
    async def test_open_failure(self):
        driver = KeynoteDriver(FakeRunner({"open POSIX file": AppleScriptError("file is damaged")}))

        result = await driver.open_file("/talks/broken.key")

        assert not result.success
        assert result.message == "Failed to open file: file is damaged"
        assert driver.document_name is None

    @pytest.mark.asyncio
    async def test_write_failure_raises(self):
        """Write operations wrap bridge errors in DriverError."""
        driver = KeynoteDriver(FakeRunner({"start": AppleScriptError("no document")}))

        with pytest.raises(DriverError, match="^Failed to start presentation: no document$"):
            await driver.start_presentation()

    @pytest.mark.asyncio
    async def test_navigation_scripts(self):
        runner = FakeRunner()
        driver = KeynoteDriver(runner)

        await driver.next_slide()
        await driver.prev_slide()

        assert "show next" in runner.scripts[0]
        assert "show previous" in runner.scripts[1]

    @pytest.mark.asyncio
    async def test_slide_info(self):
        driver = KeynoteDriver(FakeRunner({"slide number of current slide": "3", "count of slides": "12"}))

        assert await driver.get_current_slide_info() == SlideInfo(current_slide=3, total_slides=12)

    @pytest.mark.asyncio
    async def test_slide_info_degrades(self):
        """Unreadable slide info falls back to slide 1 of 0."""
        driver = KeynoteDriver(FakeRunner({"count of slides": AppleScriptError("Keynote is not running")}))

        assert await driver.get_current_slide_info() == UNKNOWN_SLIDE_INFO

    @pytest.mark.asyncio
    async def test_unparseable_current_slide(self):
        driver = KeynoteDriver(FakeRunner({"slide number of current slide": "missing value", "count of slides": "4"}))

        assert await driver.get_current_slide_info() == SlideInfo(current_slide=1, total_slides=4)

    @pytest.mark.asyncio
    async def test_notes(self):
        runner = FakeRunner({"presenter notes of slide 2": "Talk about revenue"})
        driver = KeynoteDriver(runner)

        assert await driver.get_slide_notes(2) == "Talk about revenue"

    @pytest.mark.asyncio
    async def test_notes_degrade(self):
        driver = KeynoteDriver(FakeRunner({"presenter notes": AppleScriptError("Can't get slide 9")}))

        assert await driver.get_slide_notes(9) == ""

    @pytest.mark.asyncio
    async def test_close_forgets_document(self):
        driver = KeynoteDriver(FakeRunner({"open POSIX file": "Deck.key"}))
        await driver.open_file("/talks/Deck.key")

        await driver.close_presentation()

        assert driver.document_name is None

    def test_capabilities(self):
        driver = KeynoteDriver(FakeRunner())

        assert driver.driver_type == "keynote"
        assert not driver.supports_live_slide_info
        assert not driver.supports_slide_list


class TestPowerPointDriver:
    """PowerPoint driver over a scripted runner."""

    @pytest.mark.asyncio
    async def test_open_success(self):
        driver = PowerPointDriver(FakeRunner({"open POSIX file": "Roadmap.pptx"}))

        result = await driver.open_file("/talks/Roadmap.pptx")

        assert result.success
        assert result.message == "Opened Roadmap.pptx in Microsoft PowerPoint"

    @pytest.mark.asyncio
    async def test_stop_failure(self):
        driver = PowerPointDriver(FakeRunner({"exit slide show": AppleScriptError("no slide show")}))

        with pytest.raises(DriverError, match="stop presentation"):
            await driver.stop_presentation()

    @pytest.mark.asyncio
    async def test_slide_info(self):
        driver = PowerPointDriver(FakeRunner({"slide index of slide": "5", "count of slides": "9"}))

        assert await driver.get_current_slide_info() == SlideInfo(current_slide=5, total_slides=9)

    @pytest.mark.asyncio
    async def test_notes_from_presenter_view(self):
        driver = PowerPointDriver(FakeRunner({"notes text": "Pause for questions"}))

        assert await driver.get_slide_notes(3) == "Pause for questions"

    @pytest.mark.asyncio
    async def test_slide_list(self):
        driver = PowerPointDriver(FakeRunner({"count of slides": "3"}))

        slides = await driver.get_slide_list()

        assert [slide["title"] for slide in slides] == ["Slide 1", "Slide 2", "Slide 3"]
        assert slides[2]["index"] == 3

    def test_capabilities(self):
        driver = PowerPointDriver(FakeRunner())

        assert driver.supports_live_slide_info
        assert driver.supports_slide_list
        assert not driver.supports_goto_slide

    @pytest.mark.asyncio
    async def test_goto_not_supported(self):
        with pytest.raises(NotImplementedError):
            await PowerPointDriver(FakeRunner()).goto_slide(2)


class TestCreateDrivers:
    """Driver construction from configuration."""

    def test_defaults(self):
        drivers = create_drivers()

        assert isinstance(drivers["keynote"], KeynoteDriver)
        assert isinstance(drivers["powerpoint"], PowerPointDriver)
        assert drivers["keynote"]._runner is drivers["powerpoint"]._runner
        assert drivers["keynote"]._runner.timeout == 10.0

    def test_overrides(self):
        drivers = create_drivers({
            "timeout": 3,
            "keynote": {"live_slide_info": True},
            "powerpoint": {"live_slide_info": False},
        })

        assert drivers["keynote"]._runner.timeout == 3.0
        assert drivers["keynote"].supports_live_slide_info
        assert not drivers["powerpoint"].supports_live_slide_info
