"""Styled terminal output for the host profile and the resolved VM configuration."""

import sys

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.styles import Style

from . import config as app_config
from .process import format_command

report_style = Style.from_dict({
    "title": "#00aaaa bold",
    "key": "#888888",
    "value": "#ffffff bold",
    "command": "#aaaa00",
})


def _print(fragments):
    # Resolve sys.stdout at call time so redirected output is honored.
    print_formatted_text(FormattedText(fragments), style=report_style, file=sys.stdout)


def _print_section(title, rows):
    fragments = [("class:title", f"{title}\n")]
    for key, value in rows:
        fragments.extend([
            ("class:key", f"  {key + ':':<14}"),
            ("class:value", f"{value}\n"),
        ])
    _print(fragments)


def format_resolution(resolution):
    if not resolution:
        return "unknown"
    width, height = resolution
    return f"{width}x{height}"


def print_host_profile(host):
    _print_section("Host", [
        ("Sockets", host.sockets),
        ("Cores/socket", host.cores),
        ("Threads/core", host.threads),
        ("Total CPUs", host.total_cpus),
        ("Memory", f"{host.memory_mb}M"),
        ("Display", format_resolution(host.resolution)),
    ])


def print_launch_config(config):
    action = "create" if config.creates_disk else "run"
    _print_section(f"VM '{config.name}' ({action})", [
        ("Disk", f"{config.disk_path} ({app_config.DISK_FORMAT}, {config.disk_size})"),
        ("Memory", config.memory),
        ("CPUs", f"{config.total_cpus} ({config.sockets} sockets x {config.cores} cores x {config.threads} threads)"),
        ("Graphics", config.graphics),
        ("Fullscreen", "on" if config.fullscreen else "off"),
        ("ISO", config.iso or "none"),
        ("Firmware", f"UEFI ({config.firmware})" if config.firmware else "BIOS"),
    ])


def print_command(args):
    _print([("class:command", format_command(args))])
