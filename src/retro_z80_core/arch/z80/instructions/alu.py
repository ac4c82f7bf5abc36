"""
Z80 算術論理演算 (ALU) 命令の実装。
"""
from retro_z80_core.arch.z80.state import Z80CpuState
from retro_z80_core.core.snapshot import Operation
from retro_z80_core.transport.bus import Memory
from retro_z80_core.arch.z80.alu import update_flags_add8, update_flags_logic8, update_flags_inc_dec8
from .base import get_register_name, get_register_value, set_register_value

# --- Decoding Functions ---

# @intent:responsibility INC r / DEC r 形式の命令をデコードします。
def decode_inc_dec8(opcode: int, memory: Memory, pc: int) -> Operation:
    """8ビットのINC/DEC命令をデコードします。"""
    reg_name = get_register_name((opcode >> 3) & 0b111)
    is_inc = (opcode & 1) == 0
    return Operation(
        opcode=opcode,
        mnemonic="INC" if is_inc else "DEC",
        operands=(reg_name,),
        cycle_count=4,
        length=1,
    )

# @intent:responsibility ADD A,r 形式の命令をデコードします。
def decode_add_a_r(opcode: int, memory: Memory, pc: int) -> Operation:
    src_reg_name = get_register_name(opcode & 0b111)
    return Operation(opcode=opcode, mnemonic="ADD", operands=("A", src_reg_name), cycle_count=4, length=1)

# @intent:responsibility XOR r 形式の命令をデコードします。
def decode_xor_r(opcode: int, memory: Memory, pc: int) -> Operation:
    src_reg_name = get_register_name(opcode & 0b111)
    return Operation(opcode=opcode, mnemonic="XOR", operands=(src_reg_name,), cycle_count=4, length=1)

# --- Execution Functions ---

def execute_inc_dec8(state: Z80CpuState, operation: Operation) -> None:
    regs = state.registers
    reg_name = get_register_name((operation.opcode >> 3) & 0b111)
    is_inc = (operation.opcode & 1) == 0
    val = get_register_value(regs, reg_name)
    result = (val + 1) if is_inc else (val - 1)
    set_register_value(regs, reg_name, result)
    update_flags_inc_dec8(regs, val, result, is_inc)

def execute_add_a_r(state: Z80CpuState, operation: Operation) -> None:
    regs = state.registers
    val = get_register_value(regs, get_register_name(operation.opcode & 0b111))
    a_before = regs.a
    result = a_before + val  # 9bit, not truncated yet
    regs.set_8bit("a", result)
    update_flags_add8(regs, a_before, val, result)

def execute_xor_r(state: Z80CpuState, operation: Operation) -> None:
    regs = state.registers
    val = get_register_value(regs, get_register_name(operation.opcode & 0b111))
    result = regs.a ^ val
    regs.set_8bit("a", result)
    update_flags_logic8(regs, result)
