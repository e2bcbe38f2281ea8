"""Tests for CLI error rendering and exit codes."""

import sys
from io import StringIO
from unittest.mock import patch

import pytest

from edgedeck.cli.async_runner import run_async
from edgedeck.cli.error_handler import exit_code_for, handle_error
from edgedeck.errors import BindingNotFound, ConfigNotFound, SubprocessExit


def _render(error) -> tuple[int, str]:
    captured = StringIO()
    with patch.object(sys, "stderr", captured), pytest.raises(SystemExit) as exc_info:
        handle_error(error)
    return exc_info.value.code, captured.getvalue()


class TestHandleError:
    def test_shows_id_message_and_hints(self) -> None:
        code, output = _render(ConfigNotFound(("wrangler.toml",)))

        assert code == 1
        assert "ED-1001" in output
        assert "wrangler.toml" in output
        assert "What you can do" in output

    def test_subprocess_exit_code_is_mirrored(self) -> None:
        code, output = _render(SubprocessExit("npx wrangler dev", 42))

        assert code == 42
        assert "Try running 'npx wrangler dev' directly" in output

    def test_generic_exception_is_wrapped(self) -> None:
        code, output = _render(RuntimeError("boom"))

        assert code == 1
        assert "boom" in output


class TestExitCodes:
    def test_default_is_one(self) -> None:
        assert exit_code_for(BindingNotFound("D1", "DB")) == 1

    def test_zero_subprocess_code_still_fails(self) -> None:
        assert exit_code_for(SubprocessExit("x", 0)) == 1


class TestRunAsync:
    def test_returns_result(self) -> None:
        async def answer() -> int:
            return 42

        assert run_async(answer()) == 42

    @pytest.mark.asyncio
    async def test_refuses_nested_loop(self) -> None:
        async def nothing() -> None:
            return None

        with pytest.raises(RuntimeError):
            run_async(nothing())
