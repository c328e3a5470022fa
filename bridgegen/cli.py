#!/usr/bin/env python3

from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from bridgegen.config import BridgeConfig, CppCodegenOptions, UnsafePolicy
from bridgegen.console import Console
from bridgegen.conversion import BridgeConverter
from bridgegen.conversion.errors import ConvertError
from bridgegen.conversion.parse import load_items
from bridgegen.conversion.trace import ConsoleTrace

RS_OUTPUT_NAME = "ffi.rs"


@click.command()
@click.argument("items", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON bridge configuration (allowlist, blocklist, POD requests, ...)",
)
@click.option("--include", "includes", multiple=True, help="Header the declarations came from")
@click.option(
    "--out-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory for the generated files",
)
@click.option("--header-name", help="Name of the generated shim header")
@click.option(
    "--unsafe-policy",
    type=click.Choice([p.value for p in UnsafePolicy], case_sensitive=False),
    help="Override the configured unsafe policy",
)
@click.option("--verbose", is_flag=True, help="Print the records after every phase")
def main(
    items: Path,
    config_path: Path | None,
    includes: tuple[str, ...],
    out_dir: Path,
    header_name: str | None,
    unsafe_policy: str | None,
    verbose: bool,
):
    """Generate a cxx bridge and its C++ shim from parsed C++ declarations."""
    console = Console()
    try:
        config = BridgeConfig.load_from_file(config_path) if config_path else BridgeConfig()
        raw_items = load_items(items)
    except (ValidationError, ValueError, yaml.YAMLError) as e:
        console.error(f"invalid input: {e}")
        raise SystemExit(1)

    options = CppCodegenOptions()
    if header_name:
        options = CppCodegenOptions(shim_header_name=header_name)
    trace = ConsoleTrace(Console(stderr=True)) if verbose else None
    converter = BridgeConverter(includes, config, trace=trace)
    try:
        results = converter.convert(
            raw_items,
            unsafe_policy=UnsafePolicy(unsafe_policy.lower()) if unsafe_policy else None,
            cpp_codegen_options=options,
        )
    except ConvertError as e:
        console.error(str(e))
        raise SystemExit(1)

    out_dir.mkdir(parents=True, exist_ok=True)
    written = [out_dir / RS_OUTPUT_NAME]
    written[0].write_text(results.rs_text())
    if results.cpp is not None:
        header = out_dir / results.cpp.header_name
        implementation = out_dir / options.shim_impl_name
        header.write_text(results.cpp.header)
        implementation.write_text(results.cpp.implementation)
        written += [header, implementation]

    for item in results.unsupported:
        console.warn(f"skipped {item}")
    for root in results.missing_roots:
        console.warn(f"requested item {root} is not in the output")
    for path in written:
        console.print(f"[green]wrote[/green] {path}")


if __name__ == "__main__":
    main()
