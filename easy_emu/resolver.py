"""
Turns parsed command-line options and the host profile into a validated
LaunchConfig, and a LaunchConfig into the emulator's argument list.

Resolution never touches the filesystem beyond existence checks, so every
failure here happens before a disk image is created or the emulator starts.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from . import config as app_config
from .errors import ConflictError, NotFoundError, UsageError, ValidationError
from .host import HostProfile

logger = logging.getLogger(__name__)


@dataclass
class LaunchConfig:
    """The parameters describing the one VM this invocation creates or runs."""
    name: str
    memory: str
    sockets: int
    cores: int
    threads: int
    disk_size: str = app_config.DISK_SIZE
    graphics: str = app_config.GRAPHICS
    fullscreen: bool = False
    iso: Optional[str] = None
    firmware: Optional[str] = None
    mode: str = app_config.MODE_AUTO
    extra_args: List[str] = field(default_factory=list)
    # Values exactly as typed for each option that was given, keyed by flag.
    flag_values: Dict[str, str] = field(default_factory=dict)

    @property
    def disk_path(self) -> str:
        return self.name

    @property
    def total_cpus(self) -> int:
        return self.sockets * self.cores * self.threads

    @property
    def creates_disk(self) -> bool:
        return self.mode == app_config.MODE_CREATE


def parse_size(value, option):
    """Validates a size such as '2048M' or '5g' and returns it with an upper-case unit."""
    match = re.match(app_config.SIZE_PATTERN, value.strip(), re.IGNORECASE)
    if not match:
        raise ValidationError(
            f"{option} value '{value}' needs a unit suffix ({app_config.SIZE_UNITS}), e.g. 2048M or 4G."
        )
    number, unit = match.groups()
    return f"{number}{unit.upper()}"


def derive_topology(cpus, host: HostProfile):
    """
    Splits a total CPU count into (cores, threads) per socket.

    The split is a parity heuristic, not a hardware fact: an odd count gets one
    thread per core, an even count two threads per core.
    """
    if cpus < 1:
        raise ValidationError(f"CPU count must be at least 1, got {cpus}.")
    threads = 1 if cpus % 2 else 2
    cores = cpus // threads
    if cores > host.cores:
        raise ValidationError(
            f"{cpus} CPUs need {cores} cores per socket, but the host only has {host.cores}."
        )
    return cores, threads


def find_uefi_firmware(paths=None):
    """Returns the first existing UEFI firmware image from the known locations."""
    candidates = app_config.UEFI_FIRMWARE_PATHS if paths is None else paths
    for path in candidates:
        if os.path.isfile(path):
            return path
    raise NotFoundError(
        "UEFI firmware not found. Tried: " + ", ".join(candidates) +
        ". Please install your distribution's OVMF package (e.g., ovmf, edk2-ovmf)."
    )


def _attach_iso(config, path):
    if not os.path.isfile(path):
        raise NotFoundError(f"ISO image not found: {path}")
    config.iso = path
    config.extra_args.extend(["-cdrom", path, "-boot", app_config.CDROM_BOOT_ORDER])


def _attach_uefi(config):
    config.firmware = find_uefi_firmware()
    config.extra_args.extend(["-drive", f"if=pflash,format=raw,readonly=on,file={config.firmware}"])


def resolve(args, host: HostProfile) -> LaunchConfig:
    """
    Builds a LaunchConfig from host defaults, then applies each option.

    ``args`` is the namespace produced by ``main.parse_arguments``. The
    ``-iso`` and ``-uefi`` flags contribute extra emulator arguments in the
    order they appeared on the command line.
    """
    config = LaunchConfig(
        name=args.name or "",
        memory=f"{max(host.memory_mb // 2, 1)}M",
        sockets=host.sockets,
        cores=host.cores,
        threads=host.threads,
        mode=args.mode,
    )
    config.flag_values = {
        option: str(value)
        for option, value in (
            ("-cpus", args.cpus),
            ("-sockets", args.sockets),
            ("-iso", args.iso),
            ("-memory", args.memory),
            ("-size", args.size),
            ("-graphics", args.graphics),
        )
        if value is not None
    }

    if args.cpus is not None:
        config.cores, config.threads = derive_topology(args.cpus, host)
        config.sockets = 1
    if args.sockets is not None:
        config.sockets = args.sockets
    if args.memory is not None:
        config.memory = parse_size(args.memory, "-memory")
    if args.size is not None:
        config.disk_size = parse_size(args.size, "-size")
    if args.graphics:
        config.graphics = args.graphics
    config.fullscreen = args.fullscreen

    for extra in dict.fromkeys(args.extras):
        if extra == "iso":
            _attach_iso(config, args.iso)
        elif extra == "uefi":
            _attach_uefi(config)

    if config.mode == app_config.MODE_AUTO and config.name:
        config.mode = app_config.MODE_RUN if os.path.exists(config.disk_path) else app_config.MODE_CREATE
        logger.debug("Auto mode resolved to '%s' for %s", config.mode, config.disk_path)

    return config


def validate(config: LaunchConfig, host: HostProfile):
    """Checks the resolved configuration as a whole. Raises on the first problem."""
    if not config.name:
        raise ValidationError("A VM name is required (use -name NAME or a trailing NAME).")

    for option, value in config.flag_values.items():
        if value == config.name:
            raise UsageError(
                f"VM name '{config.name}' is the same as the {option} value; did you forget a flag value?"
            )

    for label, requested, available in (
        ("sockets", config.sockets, host.sockets),
        ("cores per socket", config.cores, host.cores),
        ("threads per core", config.threads, host.threads),
    ):
        if requested < 1:
            raise ValidationError(f"Number of {label} must be at least 1, got {requested}.")
        if requested > available:
            raise ValidationError(f"Requested {requested} {label}, but the host only has {available}.")

    if config.mode == app_config.MODE_RUN:
        if not os.path.exists(config.disk_path):
            raise NotFoundError(f"Disk image not found: {config.disk_path}")
    elif config.mode == app_config.MODE_CREATE:
        if not config.iso:
            raise ValidationError("Creating a new VM requires installation media (-iso PATH).")
        if os.path.exists(config.disk_path):
            raise ConflictError(f"Disk image already exists: {config.disk_path}")


def build_emulator_args(config: LaunchConfig, host: HostProfile, qemu_executable=app_config.QEMU_EXECUTABLE):
    """Constructs the list of arguments for the emulator command."""
    args = [qemu_executable, *app_config.BASE_EMULATOR_ARGS]
    args.extend([
        "-drive", f"file={config.disk_path},format={app_config.DISK_FORMAT},if=virtio",
        "-m", config.memory,
        "-smp", f"sockets={config.sockets},cores={config.cores},threads={config.threads}",
    ])

    if config.graphics == "virtio" and host.resolution:
        width, height = host.resolution
        args.extend(["-vga", "none", "-device", f"virtio-vga,xres={width},yres={height}"])
    else:
        args.extend(["-vga", config.graphics])

    if config.fullscreen:
        args.append("-full-screen")

    args.extend(config.extra_args)
    return args
