# --- Global Configuration & Executable Paths ---

# Path to the debug log file, if enabled via command line.
DEBUG_FILE = None

# The system emulator binary used to launch the virtual machine.
QEMU_EXECUTABLE = "qemu-system-x86_64"
# The disk image helper used to create new VM disks.
QEMU_IMG_EXECUTABLE = "qemu-img"
# Host introspection tools; both are optional and fall back when missing.
LSCPU_EXECUTABLE = "lscpu"
XRANDR_EXECUTABLE = "xrandr"
# Kernel memory report consulted for the total host memory.
MEMINFO_PATH = "/proc/meminfo"

# The on-disk format of every image created by easy-emu.
DISK_FORMAT = "qcow2"
# The default size of a newly created disk image.
DISK_SIZE = "10G"
# The default QEMU graphics backend.
GRAPHICS = "virtio"

# Sizes are a whole number followed by a unit letter (K, M or G).
SIZE_PATTERN = r'^(\d+)([KMG])$'
SIZE_UNITS = "K, M or G"

# Leading words that select how the VM disk is treated.
MODE_AUTO = "auto"
MODE_CREATE = "create"
MODE_RUN = "run"
MODES = [MODE_CREATE, MODE_RUN]

# --- Emulator Flags ---

# Flags passed to every emulator invocation, ahead of the per-VM flags.
BASE_EMULATOR_ARGS = [
    "-enable-kvm",
    "-machine", "q35",
    "-cpu", "host",
    "-nic", "user,model=virtio-net-pci",
    "-usb", "-device", "usb-tablet",
]

# Boot once from the CD-ROM, then fall back to the disk on reboot.
CDROM_BOOT_ORDER = "once=d"

# --- UEFI Firmware ---

# Known locations of the OVMF firmware image, searched in order.
UEFI_FIRMWARE_PATHS = [
    "/usr/share/OVMF/OVMF_CODE.fd",
    "/usr/share/ovmf/OVMF.fd",
    "/usr/share/edk2/ovmf/OVMF_CODE.fd",
    "/usr/share/edk2-ovmf/x64/OVMF_CODE.fd",
    "/usr/share/edk2/x64/OVMF_CODE.fd",
    "/usr/share/qemu/OVMF.fd",
    "/usr/share/qemu/edk2-x86_64-code.fd",
]
