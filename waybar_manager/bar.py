"""Waybar process launching and desktop notifications."""

import logging
import os
import subprocess
import time
from pathlib import Path
from typing import List

import psutil

logger = logging.getLogger(__name__)

# Delay between spawning two bars
SPAWN_DELAY_S = 0.2
# How long to wait for old bars to exit
STOP_TIMEOUT_S = 3.0


class WaybarLauncher:
    """Stop running Waybar instances and start one per generated config."""

    def __init__(self, executable: str = "waybar", spawn_delay: float = SPAWN_DELAY_S):
        self.executable = executable
        self.spawn_delay = spawn_delay

    def running(self) -> List[psutil.Process]:
        """Running Waybar processes, excluding this process."""
        own_pid = os.getpid()
        procs = []
        for proc in psutil.process_iter(["pid", "name"]):
            try:
                if proc.info["name"] == self.executable and proc.info["pid"] != own_pid:
                    procs.append(proc)
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return procs

    def stop(self) -> int:
        """Terminate running instances, killing those that linger.

        Returns:
            Number of processes that were signalled
        """
        procs = self.running()
        if not procs:
            logger.info("Waybar is not running")
            return 0

        logger.info("Closing existing waybar (%d processes)", len(procs))
        for proc in procs:
            try:
                proc.terminate()
            except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
                logger.warning("Could not stop waybar pid %s: %s", proc.pid, e)

        _, alive = psutil.wait_procs(procs, timeout=STOP_TIMEOUT_S)
        for proc in alive:
            try:
                proc.kill()
            except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
                logger.warning("Could not kill waybar pid %s: %s", proc.pid, e)

        return len(procs)

    def spawn(self, config_path: Path, style_path: Path) -> subprocess.Popen:
        """Start one detached Waybar instance.

        Raises:
            OSError: Waybar could not be executed
        """
        cmd = [self.executable, "-c", str(config_path), "-s", str(style_path)]
        logger.debug(f"Subprocess call: {' '.join(cmd)}")

        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
        time.sleep(self.spawn_delay)
        return proc


def notify(summary: str, body: str, urgency: str = "normal", timeout_ms: int = 8000) -> bool:
    """Show a desktop notification via notify-send.

    Returns:
        True if the notification was sent
    """
    try:
        subprocess.run(
            ["notify-send", "-u", urgency, "-t", str(timeout_ms),
             "-i", "dialog-warning", summary, body],
            check=True,
            capture_output=True,
        )
        return True
    except (OSError, subprocess.CalledProcessError) as e:
        logger.warning("Error sending notification: %s", e)
        return False
