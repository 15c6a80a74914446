import argparse
import sys

from . import config as app_config, display, host, logging_utils, process, resolver
from .errors import EasyEmuError, UsageError

DESCRIPTION = """\
Create and launch QEMU virtual machines with host-aware defaults.

Examples:
  easy-emu create -name myvm -iso ubuntu.iso -size 20G -memory 4G
  easy-emu run myvm -cpus 4 -fullscreen
  easy-emu -host
"""


class EasyEmuArgumentParser(argparse.ArgumentParser):
    """Reports command-line mistakes as UsageError instead of exiting with status 2."""

    def error(self, message):
        raise UsageError(message)


class _HostAction(argparse.Action):
    """Prints the detected host profile and exits, like argparse's own help action."""

    def __init__(self, option_strings, dest=argparse.SUPPRESS, default=argparse.SUPPRESS, help=None):
        super().__init__(option_strings=option_strings, dest=dest, default=default, nargs=0, help=help)

    def __call__(self, parser, namespace, values, option_string=None):
        display.print_host_profile(host.detect_host_profile())
        parser.exit()


class _ExtraArgsAction(argparse.Action):
    """Stores the flag's value and records its position among the extra-argument flags."""

    def __call__(self, parser, namespace, values, option_string=None):
        setattr(namespace, self.dest, True if self.nargs == 0 else values)
        namespace.extras = [*getattr(namespace, "extras", []), self.dest]


# Every recognized option, in the order it is listed in --help.
OPTION_TABLE = [
    (("-help", "--help", "-h"), dict(action="help", help="Show this help message and exit.")),
    (("-host", "--host"), dict(action=_HostAction, help="Show the detected host CPU, memory and display, then exit.")),
    (("-name", "--name", "-n"), dict(metavar="NAME", help="VM name, also used as the disk image filename.")),
    (("-cpus", "--cpus", "-c"), dict(type=int, metavar="N", help="Total logical CPUs; odd counts use 1 thread per core, even counts 2.")),
    (("-sockets", "--sockets", "-S"), dict(type=int, metavar="N", help="CPU sockets. Default: the host's socket count (1 with -cpus).")),
    (("-iso", "--iso", "-i"), dict(action=_ExtraArgsAction, metavar="PATH", help="Installation media to attach as a CD-ROM.")),
    (("-memory", "--memory", "-m"), dict(metavar="SIZE", help="RAM with a K, M or G suffix. Default: half the host memory.")),
    (("-size", "--size", "-s"), dict(metavar="SIZE", help=f"Disk size for a new VM with a K, M or G suffix. Default: {app_config.DISK_SIZE}.")),
    (("-fullscreen", "--fullscreen", "-f"), dict(action="store_true", help="Start the display in full-screen mode.")),
    (("-uefi", "--uefi"), dict(action=_ExtraArgsAction, nargs=0, default=False, help="Boot with UEFI firmware instead of BIOS.")),
    (("-graphics", "--graphics", "-g"), dict(metavar="TYPE", help=f"QEMU VGA type (e.g., virtio, std, qxl). Default: {app_config.GRAPHICS}.")),
    (("-dry-run", "--dry-run"), dict(action="store_true", help="Print the QEMU command without creating a disk or starting the VM.")),
    (("-debug-file", "--debug-file"), dict(metavar="PATH", default=app_config.DEBUG_FILE, help="Write timestamped debug messages to PATH.")),
]


def build_parser():
    parser = EasyEmuArgumentParser(
        prog="easy-emu",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument("words", nargs="*", metavar="[create|run] [NAME]",
                        help="'create' requires a new disk, 'run' an existing one; "
                             "without either, an existing disk is run and a missing one created.")
    for flags, options in OPTION_TABLE:
        parser.add_argument(*flags, **options)

    suppressed_args = {
        "qemu_executable": app_config.QEMU_EXECUTABLE,
        "qemu_img_executable": app_config.QEMU_IMG_EXECUTABLE,
    }
    for arg, default_val in suppressed_args.items():
        cli_arg = arg.replace('_', '-')
        parser.add_argument(f"-{cli_arg}", f"--{cli_arg}", default=default_val, help=argparse.SUPPRESS)

    parser.set_defaults(extras=[])
    return parser


def parse_arguments(argv=None, parser=None):
    """
    Parses the command line into a namespace ready for ``resolver.resolve``.

    A leading ``create`` or ``run`` word sets ``mode``; a remaining word is the
    VM name when ``-name`` was not given.
    """
    parser = parser or build_parser()
    args = parser.parse_intermixed_args(argv)

    words = list(args.words)
    args.mode = app_config.MODE_AUTO
    if words and words[0] in app_config.MODES:
        args.mode = words.pop(0)
    if len(words) > 1:
        raise UsageError(f"unexpected arguments: {' '.join(words[1:])}")
    if words:
        if args.name and args.name != words[0]:
            raise UsageError(f"VM name given twice: '{args.name}' and '{words[0]}'")
        args.name = words[0]
    return args


def main(argv=None):
    """Parses command-line arguments, then creates and launches the VM."""
    parser = build_parser()
    try:
        args = parse_arguments(argv, parser)
        logging_utils.setup_debug_logging(args.debug_file)

        host_profile = host.detect_host_profile()
        config = resolver.resolve(args, host_profile)
        resolver.validate(config, host_profile)
        emulator_args = resolver.build_emulator_args(config, host_profile, args.qemu_executable)

        display.print_launch_config(config)
        if args.dry_run:
            display.print_command(emulator_args)
            return

        if config.creates_disk:
            process.create_disk_image(config.disk_path, config.disk_size, qemu_img_executable=args.qemu_img_executable)
        process.launch_emulator(emulator_args)
    except UsageError as e:
        parser.print_usage(sys.stderr)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except EasyEmuError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(130)
