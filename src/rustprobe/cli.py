"""
Command-line interface for rustprobe.

This module provides the `rustprobe` CLI tool for inspecting what rustc
reports about a platform: cfg values, sysroot layout, extra flags and
output file names.
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rustprobe.build import FileFlavor, RustcTargetData
from rustprobe.cli_utils import ErrorFormatter, KindParser, setup_logging
from rustprobe.config import CargoConfig
from rustprobe.toolchain import Rustc


@dataclass
class ProbeArgs:
    """Arguments shared by every command."""

    cwd: Path
    target: Optional[str] = None
    verbose: bool = False


@dataclass
class FileNamesArgs(ProbeArgs):
    """Arguments for the file-names command."""

    crate_type: str = "bin"
    kind: str = "bin"
    stem: str = "main"


def load_target_data(args: ProbeArgs) -> RustcTargetData:
    """Load configuration and probe rustc for the requested platform."""
    requested_kind = KindParser.parse_compile_kind(args.target)
    config = CargoConfig.discover(args.cwd)
    rustc = Rustc.from_env()
    logging.debug(f"Using {rustc.path} ({rustc.version}) host={rustc.host}")
    return RustcTargetData.new(config, rustc, requested_kind)


def cfg_command(args: ProbeArgs) -> None:
    """Print the cfg values of a platform, one per line.

    Examples:
        rustprobe cfg
        rustprobe cfg --target wasm32-unknown-unknown
    """
    data = load_target_data(args)
    kind = KindParser.parse_compile_kind(args.target)
    for cfg in data.cfg(kind):
        print(cfg)


def info_command(args: ProbeArgs) -> None:
    """Print sysroot layout and resolved flags of a platform.

    Examples:
        rustprobe info
        rustprobe info --target x86_64-pc-windows-msvc
    """
    data = load_target_data(args)
    kind = KindParser.parse_compile_kind(args.target)
    info = data.info(kind)

    print(f"platform:       {data.short_name(kind)}")
    print(f"sysroot:        {info.sysroot}")
    print(f"host libdir:    {info.sysroot_host_libdir}")
    print(f"target libdir:  {info.sysroot_target_libdir}")
    print(f"rustflags:      {' '.join(info.rustflags)}")
    print(f"rustdocflags:   {' '.join(info.rustdocflags)}")
    if info.supports_bitcode_in_rlib is not None:
        print(f"bitcode-in-rlib: {'yes' if info.supports_bitcode_in_rlib else 'no'}")


def file_names_command(args: FileNamesArgs) -> None:
    """Print the files one crate type produces on a platform.

    Examples:
        rustprobe file-names cdylib
        rustprobe file-names bin --target x86_64-pc-windows-msvc --stem my-app
    """
    target_kind = KindParser.parse_target_kind(args.kind)
    data = load_target_data(args)
    kind = KindParser.parse_compile_kind(args.target)
    triple = data.short_name(kind)

    file_types = data.info(kind).file_types(args.crate_type, FileFlavor.NORMAL, target_kind, triple)
    if file_types is None:
        print(f"crate type `{args.crate_type}` is not supported for `{triple}`")
        return
    for file_type in file_types:
        print(f"{file_type.flavor.value:<12} {file_type.filename(args.stem)}")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--target",
        default=None,
        help="Target triple to probe (default: host)",
    )
    parser.add_argument(
        "-C",
        "--cwd",
        type=Path,
        default=Path.cwd(),
        help="Directory to search for .cargo/config.toml from (default: current directory)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging and tracebacks",
    )


def main() -> None:
    """Rustprobe - inspect rustc platform information."""
    parser = argparse.ArgumentParser(
        prog="rustprobe",
        description="Inspect what rustc reports about a platform",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    cfg_parser = subparsers.add_parser("cfg", help="Print cfg values for a platform")
    _add_common_arguments(cfg_parser)

    info_parser = subparsers.add_parser("info", help="Print sysroot layout and extra flags")
    _add_common_arguments(info_parser)

    file_names_parser = subparsers.add_parser(
        "file-names",
        help="Print output file names for a crate type",
    )
    file_names_parser.add_argument("crate_type", help="Crate type (e.g. bin, rlib, cdylib)")
    file_names_parser.add_argument(
        "-k",
        "--kind",
        default="bin",
        help="Build target kind: lib, bin, test, bench, example-lib, example-bin, custom-build",
    )
    file_names_parser.add_argument(
        "--stem",
        default="main",
        help="File stem used to render names (default: main)",
    )
    _add_common_arguments(file_names_parser)

    parsed_args = parser.parse_args()

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging(parsed_args.verbose)

    try:
        if parsed_args.command == "cfg":
            cfg_command(ProbeArgs(parsed_args.cwd, parsed_args.target, parsed_args.verbose))
        elif parsed_args.command == "info":
            info_command(ProbeArgs(parsed_args.cwd, parsed_args.target, parsed_args.verbose))
        elif parsed_args.command == "file-names":
            file_names_command(
                FileNamesArgs(
                    cwd=parsed_args.cwd,
                    target=parsed_args.target,
                    verbose=parsed_args.verbose,
                    crate_type=parsed_args.crate_type,
                    kind=parsed_args.kind,
                    stem=parsed_args.stem,
                )
            )
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_error(e, parsed_args.verbose)


if __name__ == "__main__":
    main()
