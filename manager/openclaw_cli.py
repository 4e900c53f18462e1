"""
Thin wrapper around the external `openclaw` CLI.

Everything here shells out; nothing touches openclaw.json directly. Failures
come back as (False, output) from run_openclaw and as CommandError from the
command helpers built on top of it.
"""

import os
import shutil
import socket
import subprocess
import time
from typing import Optional

from audit import audit_log
from config_errors import CommandError
from settings import DEFAULT_GATEWAY_PORT

FEISHU_PLUGIN_PACKAGE = "@m1heng-clawd/feishu"
NOT_INSTALLED_MESSAGE = "openclaw command not found, install it with: npm install -g openclaw"

START_WAIT_SECONDS = 15
DEFAULT_LOG_LINES = 100


def find_openclaw(openclaw_bin: Optional[str] = None) -> Optional[str]:
    """Path of the openclaw binary: explicit setting, then OPENCLAW_BIN, then PATH."""
    candidate = openclaw_bin or os.environ.get("OPENCLAW_BIN")
    if candidate:
        return candidate
    return shutil.which("openclaw")


def run_openclaw(args: list[str], timeout: int = 60, openclaw_bin: Optional[str] = None) -> tuple[bool, str]:
    """Run openclaw with args. Returns (ok, stdout) or (False, combined output / error)."""
    binary = find_openclaw(openclaw_bin)
    if not binary:
        return False, NOT_INSTALLED_MESSAGE
    try:
        result = subprocess.run(
            [binary] + list(args),
            capture_output=True, text=True, timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        return False, f"openclaw {' '.join(args)} timed out after {timeout}s"
    except OSError as e:
        return False, f"Failed to run openclaw: {e}"

    if result.returncode == 0:
        return True, result.stdout
    return False, f"{result.stdout}\n{result.stderr}".strip()


def spawn_gateway(port: int = DEFAULT_GATEWAY_PORT, openclaw_bin: Optional[str] = None):
    """Start `openclaw gateway` in the background without waiting for it."""
    binary = find_openclaw(openclaw_bin)
    if not binary:
        raise CommandError(NOT_INSTALLED_MESSAGE)
    try:
        subprocess.Popen(
            [binary, "gateway", "--port", str(port)],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        raise CommandError(f"Failed to start gateway ({binary}): {e}") from e


def is_port_listening(port: int, host: str = "127.0.0.1") -> bool:
    try:
        with socket.create_connection((host, port), timeout=0.5):
            return True
    except OSError:
        return False


def get_openclaw_version(openclaw_bin: Optional[str] = None) -> Optional[str]:
    """`openclaw --version`, or None if the CLI is missing or fails."""
    ok, output = run_openclaw(["--version"], timeout=15, openclaw_bin=openclaw_bin)
    if not ok:
        return None
    return output.strip() or None


def check_openclaw_installed(openclaw_bin: Optional[str] = None) -> dict:
    binary = find_openclaw(openclaw_bin)
    return {
        "installed": binary is not None,
        "path": binary,
        "version": get_openclaw_version(openclaw_bin) if binary else None,
    }


def start_service(port: int = DEFAULT_GATEWAY_PORT, openclaw_bin: Optional[str] = None) -> str:
    """Spawn the gateway and wait for its port to accept connections."""
    if is_port_listening(port):
        raise CommandError("Gateway is already running")

    spawn_gateway(port, openclaw_bin)
    audit_log("gateway_start_requested", {"port": port})

    for _ in range(START_WAIT_SECONDS):
        time.sleep(1)
        if is_port_listening(port):
            return f"Gateway started on port {port}"
    raise CommandError(f"Gateway did not start listening on port {port} within {START_WAIT_SECONDS}s")


def stop_service(port: int = DEFAULT_GATEWAY_PORT, openclaw_bin: Optional[str] = None) -> str:
    run_openclaw(["gateway", "stop"], openclaw_bin=openclaw_bin)
    audit_log("gateway_stop_requested", {"port": port})
    time.sleep(0.5)
    if not is_port_listening(port):
        return "Gateway stopped"

    run_openclaw(["gateway", "stop", "--force"], openclaw_bin=openclaw_bin)
    time.sleep(0.5)
    if is_port_listening(port):
        raise CommandError(f"Failed to stop gateway on port {port}")
    return "Gateway stopped"


def restart_service(port: int = DEFAULT_GATEWAY_PORT, openclaw_bin: Optional[str] = None) -> str:
    """`gateway restart`; falls back to stop + start when the gateway does not come back."""
    run_openclaw(["gateway", "restart"], openclaw_bin=openclaw_bin)
    audit_log("gateway_restart_requested", {"port": port})
    time.sleep(2)
    if is_port_listening(port):
        return f"Gateway restarted on port {port}"

    try:
        stop_service(port, openclaw_bin)
    except CommandError as e:
        print(f"[openclaw] stop before restart failed: {e}")
    time.sleep(1)
    return start_service(port, openclaw_bin)


def get_logs(lines: int = DEFAULT_LOG_LINES, openclaw_bin: Optional[str] = None) -> list[str]:
    ok, output = run_openclaw(["logs", "--lines", str(lines)], openclaw_bin=openclaw_bin)
    if not ok:
        raise CommandError(f"Failed to read logs: {output}")
    return output.splitlines()


def _parse_plugin_version(line: str) -> Optional[str]:
    if "@" in line:
        return line.rsplit("@", 1)[1].strip() or None
    for part in line.split():
        if part[0].isdigit():
            return part
    return None


def check_feishu_plugin(openclaw_bin: Optional[str] = None) -> dict:
    """Look for a feishu entry in `openclaw plugins list`. A failing CLI counts as not installed."""
    ok, output = run_openclaw(["plugins", "list"], openclaw_bin=openclaw_bin)
    if ok:
        for line in output.splitlines():
            if "feishu" in line.lower():
                return {
                    "installed": True,
                    "version": _parse_plugin_version(line),
                    "plugin_name": line.strip(),
                }
    return {"installed": False, "version": None, "plugin_name": None}


def install_feishu_plugin(openclaw_bin: Optional[str] = None) -> str:
    status = check_feishu_plugin(openclaw_bin)
    if status["installed"]:
        return f"Feishu plugin already installed: {status['plugin_name']}"

    ok, output = run_openclaw(["plugins", "install", FEISHU_PLUGIN_PACKAGE], timeout=300, openclaw_bin=openclaw_bin)
    if not ok:
        raise CommandError(
            f"Failed to install Feishu plugin: {output}\n\n"
            f"Install it manually with: openclaw plugins install {FEISHU_PLUGIN_PACKAGE}"
        )

    audit_log("feishu_plugin_installed", {"package": FEISHU_PLUGIN_PACKAGE})
    status = check_feishu_plugin(openclaw_bin)
    if not status["installed"]:
        raise CommandError("Install command succeeded but the plugin was not found, check your openclaw version")
    return f"Feishu plugin installed: {status['plugin_name']}"
