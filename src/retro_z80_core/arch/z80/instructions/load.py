"""
Z80 データ転送命令の実装。
"""
from retro_z80_core.arch.z80.state import Z80CpuState
from retro_z80_core.core.snapshot import Operation
from retro_z80_core.transport.bus import Memory
from .base import get_register_name, set_register_value

# --- Decoding Functions ---

# @intent:responsibility LD r,n 形式の命令をデコードします。
def decode_ld_r_n(opcode: int, memory: Memory, pc: int) -> Operation:
    """LD r,n命令をデコードします。"""
    reg_name = get_register_name((opcode >> 3) & 0b111)
    operand_n = memory.read(pc + 1)
    return Operation(
        opcode=opcode,
        mnemonic="LD",
        operands=(reg_name, f"${operand_n:02X}"),
        operand_bytes=(operand_n,),
        cycle_count=7,
        length=2,
    )

# --- Execution Functions ---

def execute_ld_r_n(state: Z80CpuState, operation: Operation) -> None:
    reg_name = get_register_name((operation.opcode >> 3) & 0b111)
    set_register_value(state.registers, reg_name, operation.operand_bytes[0])
