"""
Z80命令セット実装パッケージ。
"""
from retro_z80_core.core.snapshot import Operation
from retro_z80_core.arch.z80.state import Z80CpuState
from retro_z80_core.transport.bus import Memory
from .maps import DECODE_MAP, EXECUTE_MAP

UNIMPLEMENTED_CYCLES = 4

# @intent:responsibility オペコードが命令表に存在するかを返します。
def is_implemented(opcode: int) -> bool:
    return opcode in EXECUTE_MAP

# @intent:responsibility 与えられたオペコードをZ80の命令としてデコードします。
# @intent:pre-condition `pc`はデコードするオペコードの先頭アドレスを指している必要があります。
def decode_opcode(opcode: int, memory: Memory, pc: int) -> Operation:
    """
    Z80のオペコードをデコードし、Operationオブジェクトを返します。
    未知のオペコードの場合は長さ1、4サイクルの"UNKNOWN"を返します（オペランドは読みません）。
    """
    decoder = DECODE_MAP.get(opcode)
    if decoder:
        return decoder(opcode, memory, pc)
    return Operation(
        opcode=opcode,
        mnemonic="UNKNOWN",
        operands=(f"${opcode:02X}",),
        cycle_count=UNIMPLEMENTED_CYCLES,
        length=1,
    )

# @intent:responsibility デコードされたZ80命令を実行し、CPUの状態を変更します。
def execute_instruction(operation: Operation, state: Z80CpuState) -> bool:
    """
    デコードされたZ80命令を実行します。実行した場合は True、未実装なら何もせず False を返します。
    """
    executor = EXECUTE_MAP.get(operation.opcode)
    if executor is None:
        return False
    executor(state, operation)
    return True
