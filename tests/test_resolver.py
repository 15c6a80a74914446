import pytest

from easy_emu import config as app_config
from easy_emu.errors import ConflictError, NotFoundError, UsageError, ValidationError
from easy_emu.host import HostProfile
from easy_emu.main import parse_arguments
from easy_emu.resolver import (
    LaunchConfig,
    build_emulator_args,
    derive_topology,
    find_uefi_firmware,
    parse_size,
    resolve,
    validate,
)


@pytest.fixture
def host_profile():
    """A one-socket host with 4 cores, 2 threads each, 16G of RAM and no display."""
    return HostProfile(sockets=1, cores=4, threads=2, memory_kb=16 * 1024 * 1024)


@pytest.fixture
def iso(tmp_path):
    path = tmp_path / "os.iso"
    path.write_bytes(b"iso")
    return str(path)


@pytest.fixture(autouse=True)
def in_tmp_dir(tmp_path, monkeypatch):
    """Disk images are named relative to the working directory."""
    monkeypatch.chdir(tmp_path)


def resolved(argv, host_profile):
    config = resolve(parse_arguments(argv), host_profile)
    validate(config, host_profile)
    return config


# --- CPU Topology ---


@pytest.mark.parametrize("cpus", [1, 3, 5, 7, 15])
def test_odd_cpu_count_uses_one_thread_per_core(cpus):
    big_host = HostProfile(sockets=1, cores=64, threads=2, memory_kb=1024)
    assert derive_topology(cpus, big_host) == (cpus, 1)


@pytest.mark.parametrize("cpus", [2, 4, 6, 8, 16])
def test_even_cpu_count_uses_two_threads_per_core(cpus):
    big_host = HostProfile(sockets=1, cores=64, threads=2, memory_kb=1024)
    assert derive_topology(cpus, big_host) == (cpus // 2, 2)


def test_derived_cores_above_host_cores_is_rejected(host_profile):
    with pytest.raises(ValidationError, match="5 cores"):
        derive_topology(5, host_profile)


def test_cpu_count_must_be_positive(host_profile):
    with pytest.raises(ValidationError):
        derive_topology(0, host_profile)


def test_cpus_option_sets_single_socket(tmp_path):
    (tmp_path / "vm").write_bytes(b"")
    big_host = HostProfile(sockets=2, cores=8, threads=2, memory_kb=1024 * 1024)
    config = resolved(["run", "vm", "-cpus", "6"], big_host)
    assert (config.sockets, config.cores, config.threads) == (1, 3, 2)
    assert config.total_cpus == 6


def test_sockets_above_host_are_rejected(tmp_path, host_profile):
    (tmp_path / "vm").write_bytes(b"")
    with pytest.raises(ValidationError, match="sockets"):
        resolved(["run", "vm", "-sockets", "2"], host_profile)


def test_threads_above_host_are_rejected(tmp_path):
    (tmp_path / "vm").write_bytes(b"")
    single_thread_host = HostProfile(sockets=1, cores=8, threads=1, memory_kb=1024 * 1024)
    with pytest.raises(ValidationError, match="threads per core"):
        resolved(["run", "vm", "-cpus", "4"], single_thread_host)


# --- Sizes ---


@pytest.mark.parametrize("value, expected", [("2048M", "2048M"), ("4g", "4G"), ("512k", "512K"), ("10G", "10G")])
def test_parse_size_accepts_unit_suffix(value, expected):
    assert parse_size(value, "-memory") == expected


@pytest.mark.parametrize("value", ["2048", "4GB", "G", "1.5G", "4T", ""])
def test_parse_size_requires_unit_suffix(value):
    with pytest.raises(ValidationError, match="unit suffix"):
        parse_size(value, "-memory")


def test_memory_without_unit_fails_during_resolution(host_profile, iso):
    with pytest.raises(ValidationError):
        resolve(parse_arguments(["create", "vm", "-iso", iso, "-memory", "2048"]), host_profile)


# --- Defaults ---


def test_defaults_come_from_host(host_profile, iso):
    config = resolved(["vm", "-iso", iso], host_profile)
    assert config.memory == "8192M"
    assert config.disk_size == app_config.DISK_SIZE
    assert (config.sockets, config.cores, config.threads) == (1, 4, 2)
    assert config.graphics == "virtio"
    assert config.fullscreen is False
    assert config.firmware is None


# --- Installation Media & Firmware ---


def test_missing_iso_is_not_found(host_profile, tmp_path):
    with pytest.raises(NotFoundError, match="ISO"):
        resolve(parse_arguments(["create", "vm", "-iso", str(tmp_path / "nope.iso")]), host_profile)
    assert not (tmp_path / "vm").exists()


def test_iso_directory_is_not_found(host_profile, tmp_path):
    media_dir = tmp_path / "media"
    media_dir.mkdir()
    with pytest.raises(NotFoundError, match="ISO"):
        resolve(parse_arguments(["create", "vm", "-iso", str(media_dir)]), host_profile)


def test_uefi_uses_first_existing_firmware(monkeypatch, tmp_path):
    firmware = tmp_path / "OVMF_CODE.fd"
    firmware.write_bytes(b"fw")
    monkeypatch.setattr(app_config, "UEFI_FIRMWARE_PATHS", [str(tmp_path / "missing.fd"), str(firmware)])
    assert find_uefi_firmware() == str(firmware)


def test_uefi_without_firmware_is_not_found(monkeypatch, tmp_path, host_profile, iso):
    monkeypatch.setattr(app_config, "UEFI_FIRMWARE_PATHS", [str(tmp_path / "missing.fd")])
    with pytest.raises(NotFoundError, match="UEFI firmware"):
        resolve(parse_arguments(["vm", "-iso", iso, "-uefi"]), host_profile)


def test_extra_args_follow_command_line_order(monkeypatch, tmp_path, host_profile, iso):
    firmware = tmp_path / "OVMF.fd"
    firmware.write_bytes(b"fw")
    monkeypatch.setattr(app_config, "UEFI_FIRMWARE_PATHS", [str(firmware)])

    uefi_first = resolved(["vm", "-uefi", "-iso", iso], host_profile)
    iso_first = resolved(["vm", "-iso", iso, "-uefi"], host_profile)

    pflash = f"if=pflash,format=raw,readonly=on,file={firmware}"
    assert uefi_first.extra_args == ["-drive", pflash, "-cdrom", iso, "-boot", "once=d"]
    assert iso_first.extra_args == ["-cdrom", iso, "-boot", "once=d", "-drive", pflash]
    assert iso_first.firmware == str(firmware)


# --- Name & Mode Validation ---


def test_name_is_required(host_profile, iso):
    with pytest.raises(ValidationError, match="name is required"):
        resolved(["create", "-iso", iso], host_profile)


@pytest.mark.parametrize("argv, option", [
    (["-memory", "4G", "4G"], "-memory"),
    (["-memory", "4g", "4g"], "-memory"),
    (["-size", "20g", "20g"], "-size"),
    (["-cpus", "4", "4"], "-cpus"),
    (["-sockets", "1", "1"], "-sockets"),
    (["-graphics", "qxl", "qxl"], "-graphics"),
])
def test_name_matching_a_flag_value_is_usage_error(argv, option, host_profile, iso):
    with pytest.raises(UsageError, match=option):
        resolved(["-iso", iso, *argv], host_profile)


def test_name_matching_iso_path_is_usage_error(host_profile, iso):
    with pytest.raises(UsageError, match="-iso"):
        resolved(["-iso", iso, iso], host_profile)


def test_positional_name_conflicting_with_flag_is_usage_error():
    with pytest.raises(UsageError):
        parse_arguments(["-name", "one", "two"])


def test_run_requires_existing_disk(host_profile):
    with pytest.raises(NotFoundError, match="Disk image not found"):
        resolved(["run", "vm"], host_profile)


def test_create_requires_iso(host_profile):
    with pytest.raises(ValidationError, match="installation media"):
        resolved(["create", "vm"], host_profile)


def test_create_refuses_existing_disk(tmp_path, host_profile, iso):
    disk = tmp_path / "vm"
    disk.write_bytes(b"existing image")
    with pytest.raises(ConflictError):
        resolved(["create", "vm", "-iso", iso], host_profile)
    assert disk.read_bytes() == b"existing image"


def test_auto_mode_runs_existing_disk_without_iso(tmp_path, host_profile):
    (tmp_path / "vm").write_bytes(b"")
    config = resolved(["vm"], host_profile)
    assert config.mode == app_config.MODE_RUN
    assert not config.creates_disk


def test_auto_mode_creates_missing_disk(host_profile, iso):
    config = resolved(["vm", "-iso", iso], host_profile)
    assert config.mode == app_config.MODE_CREATE
    assert config.creates_disk


# --- Emulator Arguments ---


def test_build_emulator_args(host_profile):
    config = LaunchConfig(name="testvm", memory="2048M", sockets=1, cores=2, threads=2,
                          fullscreen=True, extra_args=["-cdrom", "os.iso"])
    args = build_emulator_args(config, host_profile, "qemu-test")

    assert args[0] == "qemu-test"
    assert args[-2:] == ["-cdrom", "os.iso"]
    assert "file=testvm,format=qcow2,if=virtio" in args
    assert args[args.index("-m") + 1] == "2048M"
    assert args[args.index("-smp") + 1] == "sockets=1,cores=2,threads=2"
    assert args[args.index("-vga") + 1] == "virtio"
    assert "-full-screen" in args


def test_virtio_graphics_uses_host_resolution():
    display_host = HostProfile(sockets=1, cores=4, threads=2, memory_kb=1024, resolution=(1920, 1080))
    config = LaunchConfig(name="vm", memory="1G", sockets=1, cores=1, threads=1)
    args = build_emulator_args(config, display_host)
    assert "virtio-vga,xres=1920,yres=1080" in args
    assert args[args.index("-vga") + 1] == "none"
    assert "-full-screen" not in args


def test_other_graphics_ignore_resolution():
    display_host = HostProfile(sockets=1, cores=4, threads=2, memory_kb=1024, resolution=(1920, 1080))
    config = LaunchConfig(name="vm", memory="1G", sockets=1, cores=1, threads=1, graphics="qxl")
    args = build_emulator_args(config, display_host)
    assert args[args.index("-vga") + 1] == "qxl"
