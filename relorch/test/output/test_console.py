"""Tests for relorch.output.console module."""

import threading

import pytest

from relorch.output.console import MockConsole, PrefixedConsole, RichConsole, Style


class TestMockConsole:
    def test_records_styles(self) -> None:
        console = MockConsole()
        console.success("done")
        console.error("failed")
        console.info("building")

        assert console.messages == ["OK done", "error: failed", "info: building"]
        assert [o.style for o in console.outputs] == [Style.SUCCESS, Style.ERROR, Style.INFO]
        assert console.has_error()

    def test_table_lines(self) -> None:
        console = MockConsole()
        console.table("Release v1", ["target", "status"], [["linux", "attached"]])
        assert console.messages == ["Release v1", "target | status", "linux | attached"]

    def test_concurrent_writes(self) -> None:
        """Worker threads share one console."""
        console = MockConsole()

        def write(n: int) -> None:
            for i in range(100):
                console.print(f"{n}-{i}")

        threads = [threading.Thread(target=write, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(console.outputs) == 400


class TestPrefixedConsole:
    def test_prefixes_every_line(self) -> None:
        inner = MockConsole()
        console = PrefixedConsole(inner, "macos")

        console.info("building")
        console.error("build failed")
        console.print("cargo build", Style.DIM)

        assert inner.messages == [
            "info: [macos] building",
            "error: [macos] build failed",
            "[macos] cargo build",
        ]
        assert inner.outputs[2].style == Style.DIM


class TestRichConsole:
    def test_markup_in_messages_is_literal(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole().error("asset [bold]x[/bold] rejected")
        out = capsys.readouterr().out
        assert "[bold]x[/bold]" in out

    def test_table(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole().table("Release v1", ["target", "status"], [["linux", "attached"]])
        out = capsys.readouterr().out
        assert "Release v1" in out
        assert "attached" in out

    def test_table_cells_are_literal(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Asset names and API messages may look like markup."""
        RichConsole().table(
            "[linux] Release v1",
            ["target", "detail"],
            [["linux", "upload failed: [/bold] rejected"]],
        )
        out = capsys.readouterr().out
        assert "[linux] Release v1" in out
        assert "[/bold] rejected" in out
