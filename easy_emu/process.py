import logging
import subprocess

from . import config as app_config
from .errors import ExternalToolError

logger = logging.getLogger(__name__)


def format_command(args):
    """Renders an argument list one flag per line, shell-quoted, for display."""
    lines = [args[0]] + [f"    {subprocess.list2cmdline([arg])}" for arg in args[1:]]
    return " \\\n".join(lines)


def create_disk_image(path, size, disk_format=app_config.DISK_FORMAT, qemu_img_executable=app_config.QEMU_IMG_EXECUTABLE):
    """Creates a new disk image with qemu-img. Blocks until the helper exits."""
    command = [qemu_img_executable, "create", "-f", disk_format, path, size]
    print(f"Info: Creating {size} {disk_format} disk image at: {path}", flush=True)
    logger.debug("Running %s", command)
    try:
        result = subprocess.run(command, capture_output=True, text=True)
    except FileNotFoundError:
        raise ExternalToolError(f"Disk image helper '{qemu_img_executable}' not found.")
    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        raise ExternalToolError(
            f"'{qemu_img_executable}' exited with status {result.returncode} while creating {path}"
            + (f": {detail}" if detail else ".")
        )


def launch_emulator(args):
    """
    Spawns the emulator and detaches from it.

    The child runs in its own session with no captured output. It is never
    waited on: once this returns, the VM's lifetime is the emulator's concern.
    """
    print("--- Starting QEMU with the following command ---", flush=True)
    print(format_command(args), flush=True)
    print("-" * 50, flush=True)

    try:
        process = subprocess.Popen(args, stdin=subprocess.DEVNULL, start_new_session=True)
    except FileNotFoundError:
        raise ExternalToolError(f"QEMU executable '{args[0]}' not found.")
    except OSError as e:
        raise ExternalToolError(f"Could not start '{args[0]}': {e}")
    logger.debug("Spawned %s with pid %s", args[0], process.pid)
    print(f"Info: QEMU started in the background (pid {process.pid}).", flush=True)
    return process
