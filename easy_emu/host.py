"""
Host introspection.

Reads the CPU topology, total memory and display resolution of the machine
easy-emu runs on. Each probe shells out to a standard tool (``lscpu``,
``xrandr``) or reads a kernel file, and falls back to a conservative answer
when the tool is not available.
"""

import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional, Tuple

from . import config as app_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HostProfile:
    """Read-only snapshot of the host, computed once per invocation."""
    sockets: int
    cores: int
    threads: int
    memory_kb: int
    resolution: Optional[Tuple[int, int]] = None

    @property
    def total_cpus(self) -> int:
        return self.sockets * self.cores * self.threads

    @property
    def memory_mb(self) -> int:
        return self.memory_kb // 1024


def _run_tool(executable, *args):
    """Runs a host tool and returns its stdout, or None if it is unavailable."""
    path = shutil.which(executable)
    if not path:
        logger.debug("%s not found in PATH", executable)
        return None
    try:
        result = subprocess.run([path, *args], capture_output=True, text=True, check=True)
    except (subprocess.CalledProcessError, OSError) as e:
        logger.debug("%s failed: %s", executable, e)
        return None
    return result.stdout


def _int_field(fields, key):
    try:
        return max(1, int(fields[key]))
    except (KeyError, ValueError):
        return 1


def parse_lscpu(output):
    """Extracts (sockets, cores per socket, threads per core) from ``lscpu`` output."""
    fields = {}
    for line in output.splitlines():
        key, sep, value = line.partition(':')
        if sep:
            fields[key.strip()] = value.strip()
    return (
        _int_field(fields, "Socket(s)"),
        _int_field(fields, "Core(s) per socket"),
        _int_field(fields, "Thread(s) per core"),
    )


def parse_meminfo(text):
    """Returns MemTotal in kB from the contents of /proc/meminfo, or None."""
    match = re.search(r'^MemTotal:\s+(\d+)\s*kB', text, re.MULTILINE)
    return int(match.group(1)) if match else None


def parse_xrandr(output):
    """Returns the current (width, height) of the first screen, or None."""
    match = re.search(r'current (\d+) x (\d+)', output)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def read_cpu_topology(lscpu_executable=app_config.LSCPU_EXECUTABLE):
    output = _run_tool(lscpu_executable)
    if output is not None:
        return parse_lscpu(output)
    # Without lscpu, treat every logical CPU as a single-threaded core on one socket.
    return 1, os.cpu_count() or 1, 1


def read_total_memory_kb(meminfo_path=app_config.MEMINFO_PATH):
    try:
        with open(meminfo_path) as f:
            total = parse_meminfo(f.read())
        if total:
            return total
    except OSError as e:
        logger.debug("Could not read %s: %s", meminfo_path, e)
    return os.sysconf('SC_PAGE_SIZE') * os.sysconf('SC_PHYS_PAGES') // 1024


def read_display_resolution(xrandr_executable=app_config.XRANDR_EXECUTABLE):
    output = _run_tool(xrandr_executable, "--current")
    return parse_xrandr(output) if output else None


def detect_host_profile():
    """Probes the host and returns its HostProfile."""
    sockets, cores, threads = read_cpu_topology()
    profile = HostProfile(
        sockets=sockets,
        cores=cores,
        threads=threads,
        memory_kb=read_total_memory_kb(),
        resolution=read_display_resolution(),
    )
    logger.debug("Detected host profile: %s", profile)
    return profile
