"""Launcher for the ``firebase-server`` Realtime Database emulator.

The emulator is an unofficial one (https://github.com/urish/firebase-server),
installed by npm into the web client's ``node_modules/.bin`` directory. It
serves the database REST API on port 5000 and ignores authentication.
"""

import logging
import platform
import socket
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


logger = logging.getLogger(__name__)

EMULATOR_NAME = "firebase-server"
EMULATOR_HOST = "127.0.0.1"
EMULATOR_PORT = 5000
DEFAULT_START_TIMEOUT = 30.0


@dataclass
class LaunchResult:
    ok: bool
    command: List[str] = field(default_factory=list)
    process: Optional[subprocess.Popen] = None
    error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.poll() is None


def emulator_executable(bin_dir: Path, system: Optional[str] = None) -> Path:
    system = system or platform.system()
    suffix = ".cmd" if system == "Windows" else ""
    return Path(bin_dir) / f"{EMULATOR_NAME}{suffix}"


def emulator_args(rules_file: Path) -> List[str]:
    return ["-e", "-r", str(rules_file)]


def port_in_use(host: str, port: int) -> bool:
    try:
        with socket.create_connection((host, port), timeout=0.5):
            return True
    except OSError:
        return False


def wait_for_port(
    host: str,
    port: int,
    timeout: float = DEFAULT_START_TIMEOUT,
    interval: float = 0.2,
    process: Optional[subprocess.Popen] = None,
) -> bool:
    """Polls until ``host:port`` accepts TCP connections.

    Gives up early when ``process`` is supplied and has already exited.
    """
    deadline = time.monotonic() + timeout
    while True:
        try:
            with socket.create_connection((host, port), timeout=interval):
                return True
        except OSError:
            pass
        if process is not None and process.poll() is not None:
            return False
        if time.monotonic() >= deadline:
            return False
        time.sleep(interval)


def launch_emulator(
    bin_dir: Path,
    rules_file: Path,
    port: int = EMULATOR_PORT,
    timeout: float = DEFAULT_START_TIMEOUT,
    system: Optional[str] = None,
) -> LaunchResult:
    """Starts the emulator and waits until it listens on ``port``.

    No retry is attempted. Whatever goes wrong is reported in the returned
    ``LaunchResult`` and left for the caller to act upon; a process that
    failed to bind the port in time is terminated before returning.

    ``bin_dir`` and ``rules_file`` may be relative to the current directory.
    """
    bin_dir = Path(bin_dir).resolve()
    executable = emulator_executable(bin_dir, system)
    command = [str(executable), *emulator_args(Path(rules_file).resolve())]
    if port_in_use(EMULATOR_HOST, port):
        error = f"Port {port} is already in use, another emulator may be running"
        logger.error(error)
        return LaunchResult(ok=False, command=command, error=error)

    logger.info("Starting emulator: %s", " ".join(command))

    try:
        process = subprocess.Popen(command, cwd=str(bin_dir))
    except OSError as exc:
        logger.error("Emulator could not be started: %s", exc)
        return LaunchResult(ok=False, command=command, error=f"Failed to start {executable}: {exc}")

    if wait_for_port(EMULATOR_HOST, port, timeout=timeout, process=process) and process.poll() is None:
        logger.info("Emulator is listening on %s:%d", EMULATOR_HOST, port)
        return LaunchResult(ok=True, command=command, process=process)

    exit_code = process.poll()
    if exit_code is not None:
        error = f"Emulator exited with code {exit_code} while starting on port {port}"
    else:
        error = f"Emulator did not bind port {port} within {timeout:g}s"
        _terminate(process)
    logger.error(error)
    return LaunchResult(ok=False, command=command, process=process, error=error)


def stop_emulator(result: LaunchResult, timeout: float = 5.0) -> None:
    if result.running:
        logger.info("Stopping emulator")
        _terminate(result.process, timeout)


def _terminate(process: subprocess.Popen, timeout: float = 5.0) -> None:
    process.terminate()
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()
