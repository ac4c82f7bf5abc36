"""
Z80命令セット実装のための共通ヘルパー関数と定数。
"""
from typing import Sequence

from retro_z80_core.arch.z80.state import Z80Registers

# Helper functions for register mapping
REGISTER_CODES = {
    0b000: "B", 0b001: "C", 0b010: "D", 0b011: "E",
    0b100: "H", 0b101: "L", 0b110: "(HL)", 0b111: "A"
}

# @intent:utility_function 指定されたコードに対応するレジスタ名を返します。
def get_register_name(code: int) -> str:
    return REGISTER_CODES.get(code, "UNKNOWN_REG")

# @intent:utility_function レジスタ名に基づいて現在の値を取得します。
def get_register_value(regs: Z80Registers, reg_name: str) -> int:
    return getattr(regs, reg_name.lower())

# @intent:utility_function レジスタ名に値を設定します（8bitにマスク）。
def set_register_value(regs: Z80Registers, reg_name: str, value: int) -> None:
    regs.set_8bit(reg_name.lower(), value)

# @intent:utility_function リトルエンディアンの2バイトを16bit値にします。
def word_from_bytes(operand_bytes: Sequence[int]) -> int:
    low, high = operand_bytes[0], operand_bytes[1]
    return (high << 8) | low

# @intent:utility_function 8bit値を2の補数の符号付き値として解釈します。
def to_signed8(value: int) -> int:
    value &= 0xFF
    return value - 256 if value >= 128 else value
