"""
Z80 制御命令（分岐、システム制御）の実装。
"""
from retro_z80_core.arch.z80.state import Z80CpuState
from retro_z80_core.core.snapshot import Operation
from retro_z80_core.transport.bus import Memory
from .base import to_signed8, word_from_bytes

# --- Decoding Functions ---

def decode_00(opcode: int, memory: Memory, pc: int) -> Operation:
    """NOP命令をデコードします。"""
    return Operation(opcode=0x00, mnemonic="NOP", cycle_count=4, length=1)

# @intent:responsibility オペコード0x76 (HALT)をデコードします。
def decode_76(opcode: int, memory: Memory, pc: int) -> Operation:
    return Operation(opcode=0x76, mnemonic="HALT", cycle_count=4, length=1)

# @intent:responsibility オペコード0xC3 (JP nn) をデコードします。
def decode_c3(opcode: int, memory: Memory, pc: int) -> Operation:
    """JP nn命令をデコードします。オペランドはリトルエンディアンです。"""
    nn_low = memory.read(pc + 1)
    nn_high = memory.read(pc + 2)
    nn = (nn_high << 8) | nn_low
    return Operation(
        opcode=0xC3,
        mnemonic="JP",
        operands=(f"${nn:04X}",),
        operand_bytes=(nn_low, nn_high),
        cycle_count=10,
        length=3,
    )

# @intent:responsibility オペコード0x18 (JR e) をデコードします。
def decode_18(opcode: int, memory: Memory, pc: int) -> Operation:
    """JR e命令をデコードします。表示上のオペランドは飛び先アドレスです。"""
    raw = memory.read(pc + 1)
    target = (pc + 2 + to_signed8(raw)) & 0xFFFF
    return Operation(
        opcode=0x18,
        mnemonic="JR",
        operands=(f"${target:04X}",),
        operand_bytes=(raw,),
        cycle_count=12,
        length=2,
    )

# --- Execution Functions ---

def execute_00(state: Z80CpuState, operation: Operation) -> None:
    # Intentional: NOP does nothing.
    pass

def execute_76(state: Z80CpuState, operation: Operation) -> None:
    state.halted = True

def execute_c3(state: Z80CpuState, operation: Operation) -> None:
    state.registers.set_16bit("pc", word_from_bytes(operation.operand_bytes))

def execute_18(state: Z80CpuState, operation: Operation) -> None:
    # PCは既に命令の直後（2バイト先）を指している
    offset = to_signed8(operation.operand_bytes[0])
    state.registers.set_16bit("pc", state.registers.pc + offset)
