"""End-to-end tests for main.py, run as a separate process."""

import os
import subprocess
import sys
from datetime import datetime
from pathlib import Path

import pytest
from fastmcp import Client
from fastmcp.client.transports import PythonStdioTransport

ROOT = Path(__file__).resolve().parent.parent
MAIN = ROOT / "main.py"

# Nothing listens here; the tests below never reach the Luskad API.
UNUSED_API_URL = "http://127.0.0.1:9/api/v1"


def _environment(**overrides):
    env = {
        key: value
        for key, value in os.environ.items()
        if key not in ("API_KEY", "API_URL", "MCP_TRANSPORT", "HOST", "PORT")
    }
    # Present but empty, so a stray .env file cannot supply a key.
    env["API_KEY"] = ""
    env.update(overrides)
    return env


def _run_main(env, timeout=30):
    return subprocess.run(
        [sys.executable, str(MAIN)],
        cwd=ROOT,
        env=env,
        stdin=subprocess.DEVNULL,
        capture_output=True,
        text=True,
        timeout=timeout,
    )


class TestStartupFailures:

    def test_missing_api_key_exits_1(self):
        result = _run_main(_environment())

        assert result.returncode == 1
        assert "API key is not set" in result.stderr
        assert result.stdout == ""

    def test_exhausted_port_range_exits_1(self, hold_ports):
        first = hold_ports(11)
        env = _environment(
            API_KEY="test-key",
            API_URL=UNUSED_API_URL,
            MCP_TRANSPORT="http",
            HOST="127.0.0.1",
            PORT=str(first),
        )

        result = _run_main(env)

        assert result.returncode == 1
        assert f"No free port between {first} and {first + 10}" in result.stderr


class TestStdioTransport:

    @pytest.mark.asyncio
    async def test_stdio_session_answers_a_tool_call(self):
        env = {"API_KEY": "test-key", "API_URL": UNUSED_API_URL}
        if "PYTHONPATH" in os.environ:
            env["PYTHONPATH"] = os.environ["PYTHONPATH"]
        transport = PythonStdioTransport(str(MAIN), env=env, cwd=str(ROOT))

        async with Client(transport) as client:
            tools = await client.list_tools()
            result = await client.call_tool("get-current-date", {})

        assert len(tools) == 11
        text = result.content[0].text
        assert datetime.fromisoformat(text.replace("Z", "+00:00")).tzinfo is not None
