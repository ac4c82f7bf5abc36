# retro_z80_core/cli/trace.py
"""
z80trace - アセンブルして実行トレースを表示するコマンドラインドライバ。

使用例:
    $ z80trace demo.asm
    $ z80trace demo.asm --origin 0x8000 --max-steps 200
    $ z80trace demo.asm --config session.yaml -v
"""
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from retro_z80_core.config.builder import SystemBuilder
from retro_z80_core.config.loader import ConfigError, ConfigLoader
from retro_z80_core.config.models import SessionConfig
from retro_z80_core.core.snapshot import Snapshot
from retro_z80_core.debugger.debugger import StopReason, UnimplementedOpcodeError


def _parse_address(value: str) -> int:
    try:
        if value.lower().startswith("0x"):
            return int(value, 16)
        if value.startswith("$"):
            return int(value[1:], 16)
        return int(value)
    except ValueError:
        raise click.BadParameter(f"Invalid address '{value}'") from None


# @intent:responsibility 1命令分のトレース行を整形します。
def format_trace_line(snapshot: Snapshot) -> str:
    result = snapshot.result
    regs = snapshot.state.registers
    operation = result.operation
    raw = " ".join(f"{b:02X}" for b in (operation.opcode, *operation.operand_bytes)) if operation else ""
    text = operation.text() if operation else "-"
    line = snapshot.metadata.source_line
    line_str = f"L{line + 1}" if line is not None else ""
    marker = " !" if result.unimplemented else ""
    return (
        f"{result.pc:04X}  {raw:<9} {text:<12} "
        f"A={regs.a:02X} F={regs.f:02X} B={regs.b:02X}  "
        f"cyc={snapshot.metadata.cycle_count:<6} {line_str}{marker}"
    ).rstrip()


@click.command()
@click.argument(
    "source_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-c", "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML session configuration",
)
@click.option(
    "-o", "--origin",
    type=str,
    default=None,
    help="Load address (hex with 0x/$ prefix or decimal). Overrides the config.",
)
@click.option(
    "-n", "--max-steps",
    type=click.IntRange(min=1),
    default=1000,
    show_default=True,
    help="Maximum number of instructions to execute",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable debug logging",
)
def main(
    source_file: Path,
    config_file: Optional[Path],
    origin: Optional[str],
    max_steps: int,
    verbose: bool,
) -> None:
    """
    Assemble SOURCE_FILE, load it and print an execution trace.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ConfigLoader().load_from_file(str(config_file)) if config_file else SessionConfig()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)
    if origin is not None:
        config.origin = _parse_address(origin) & 0xFFFF

    _, debugger = SystemBuilder().build_system(config)
    try:
        source = source_file.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        click.echo(f"Error: {source_file} is not valid UTF-8 text ({e.reason})", err=True)
        sys.exit(2)
    result = debugger.load_source(source)

    for diag in result.diagnostics:
        click.echo(f"warning: line {diag.line_index + 1}: {diag.reason}: {diag.text.strip()}", err=True)
    click.echo(f"; {len(result.data)} bytes at ${result.origin:04X}")

    executed = 0
    try:
        while executed < max_steps:
            run = debugger.run(min(config.steps_per_tick, max_steps - executed))
            for snapshot in run.snapshots:
                click.echo(format_trace_line(snapshot))
            executed += run.steps
            if run.reason is not StopReason.STEP_LIMIT or run.steps == 0:
                click.echo(f"; stopped: {run.reason.value}")
                break
    except UnimplementedOpcodeError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    cpu = debugger.cpu
    regs = ", ".join(f"{name}={value:0{4 if name in ('PC', 'SP', 'IX', 'IY') else 2}X}"
                     for name, value in cpu.get_register_map().items()
                     if name in ("A", "F", "B", "C", "D", "E", "H", "L", "PC", "SP"))
    flags = "".join(name if on else "-" for name, on in cpu.get_flag_state().items() if name not in ("Y", "X"))
    click.echo(f"; {regs}")
    click.echo(f"; flags={flags} cycles={cpu.cycles} halted={cpu.halted}")


if __name__ == "__main__":
    main()
