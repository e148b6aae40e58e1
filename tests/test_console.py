import io

import pytest

from voicecall.__main__ import main
from voicecall.console import ConsoleCapture, ConsoleSynthesizer
from voicecall.core.speech import Utterance


@pytest.mark.asyncio
async def test_console_capture_reads_lines_until_eof():
    capture = ConsoleCapture(io.StringIO("Halo\nApa kabar?\n"))

    first = await capture.read()
    second = await capture.read()

    assert first.text == "Halo"
    assert first.is_final is True
    assert second.text == "Apa kabar?"
    assert await capture.read() is None


def test_console_capture_start_stop():
    capture = ConsoleCapture(io.StringIO(""))
    capture.start()
    assert capture.active is True
    capture.stop()
    assert capture.active is False


@pytest.mark.asyncio
async def test_console_synthesizer_prints():
    out = io.StringIO()
    await ConsoleSynthesizer(speaker="Nova", stream=out).speak(Utterance(text="Halo!"))
    assert out.getvalue() == "Nova: Halo!\n"


def test_sanitize_command(monkeypatch, capsys):
    monkeypatch.setattr("voicecall.__main__.configure_logging", lambda **kwargs: None)
    monkeypatch.setattr("sys.stdin", io.StringIO("<think>x</think>**Halo!** Diskon 50% 😊"))
    assert main(["sanitize"]) == 0
    assert capsys.readouterr().out == "Halo! Diskon 50 persen\n"


def test_sanitize_command_display_preset(monkeypatch, capsys):
    monkeypatch.setattr("voicecall.__main__.configure_logging", lambda **kwargs: None)
    monkeypatch.setattr("sys.stdin", io.StringIO("<think>x</think>**Halo!**"))
    assert main(["sanitize", "--preset", "display"]) == 0
    assert capsys.readouterr().out == "**Halo!**\n"
