# retro_z80_core/arch/z80/state.py
"""
Z80 CPU固有の状態定義。

このモジュールは、Z80 CPUのレジスタ、フラグ、およびその他の状態を保持するデータ構造を定義します。
レジスタへの書き込みはビット幅ごとの専用セッターを経由し、常にマスクされます（拒否はされません）。
"""
from dataclasses import dataclass, field, fields, replace
from typing import Dict, Union

from retro_z80_core.common.types import REGISTERS_8BIT, REGISTERS_16BIT, REGISTERS_BOOL, RegisterName
from retro_z80_core.core.state import CpuState

# Z80フラグビットマスク
# @intent:constant Z80フラグレジスタ内の各フラグビットの位置を定義します。
S_FLAG = 0b10000000  # Sign (符号)
Z_FLAG = 0b01000000  # Zero (ゼロ)
Y_FLAG = 0b00100000  # Undocumented bit 5
H_FLAG = 0b00010000  # Half Carry (ハーフキャリー)
X_FLAG = 0b00001000  # Undocumented bit 3
PV_FLAG = 0b00000100 # Parity/Overflow (パリティ/オーバーフロー)
N_FLAG = 0b00000010  # Add/Subtract (加減算)
C_FLAG = 0b00000001  # Carry (キャリー)

INITIAL_SP = 0xFFFF


def _flag_property(mask: int, doc: str) -> property:
    def getter(self: "Z80Registers") -> bool:
        return (self.f & mask) != 0

    def setter(self: "Z80Registers", value: bool) -> None:
        if value:
            self.f = self.f | mask
        else:
            self.f = self.f & ~mask & 0xFF

    return property(getter, setter, doc=doc)


def _pair_property(high: str, low: str) -> property:
    def getter(self: "Z80Registers") -> int:
        return (getattr(self, high) << 8) | getattr(self, low)

    def setter(self: "Z80Registers", value: int) -> None:
        self.set_8bit(high, value >> 8)
        self.set_8bit(low, value)

    return property(getter, setter)


# @intent:responsibility Z80 CPUのレジスタファイルを保持します。1レジスタ = 1フィールド。
@dataclass
class Z80Registers:
    """
    Z80のレジスタファイル。
    8bit汎用レジスタ、16bitレジスタ、特殊レジスタ、割り込み関連の状態を含みます。
    """
    # Main registers
    a: int = 0x00
    f: int = 0x00  # Flag register
    b: int = 0x00
    c: int = 0x00
    d: int = 0x00
    e: int = 0x00
    h: int = 0x00
    l: int = 0x00

    # 16-bit registers
    pc: int = 0x0000
    sp: int = INITIAL_SP
    ix: int = 0x0000
    iy: int = 0x0000

    # Special purpose registers
    i: int = 0x00  # Interrupt Vector
    r: int = 0x00  # Refresh Register

    # Interrupt state
    iff1: bool = False
    iff2: bool = False
    im: int = 0

    # @intent:accessor Fレジスタの各フラグビットにアクセスするためのプロパティ。
    flag_s = _flag_property(S_FLAG, "Sign")
    flag_z = _flag_property(Z_FLAG, "Zero")
    flag_y = _flag_property(Y_FLAG, "Undocumented bit 5")
    flag_h = _flag_property(H_FLAG, "Half Carry")
    flag_x = _flag_property(X_FLAG, "Undocumented bit 3")
    flag_pv = _flag_property(PV_FLAG, "Parity/Overflow")
    flag_n = _flag_property(N_FLAG, "Add/Subtract")
    flag_c = _flag_property(C_FLAG, "Carry")

    # 16-bit register pairs
    af = _pair_property("a", "f")
    bc = _pair_property("b", "c")
    de = _pair_property("d", "e")
    hl = _pair_property("h", "l")

    # @intent:responsibility 8bitレジスタに値を設定します。範囲外の値は下位8bitにマスクされます。
    def set_8bit(self, name: str, value: int) -> None:
        if name not in REGISTERS_8BIT:
            raise KeyError(f"{name!r} is not an 8-bit register")
        setattr(self, name, int(value) & 0xFF)

    # @intent:responsibility 16bitレジスタに値を設定します。範囲外の値は下位16bitにマスクされます。
    def set_16bit(self, name: str, value: int) -> None:
        if name not in REGISTERS_16BIT:
            raise KeyError(f"{name!r} is not a 16-bit register")
        setattr(self, name, int(value) & 0xFFFF)

    # @intent:responsibility 真偽値レジスタ（IFF1/IFF2）に値の真偽を設定します。
    def set_bool(self, name: str, value: Union[int, bool]) -> None:
        if name not in REGISTERS_BOOL:
            raise KeyError(f"{name!r} is not a boolean register")
        setattr(self, name, bool(value))

    def write(self, name: RegisterName, value: Union[int, bool]) -> None:
        """
        レジスタ名に応じたビット幅のセッターへ振り分けます。
        未知のレジスタ名は KeyError になります。
        """
        if name in REGISTERS_16BIT:
            self.set_16bit(name, value)
        elif name in REGISTERS_BOOL:
            self.set_bool(name, value)
        elif name in REGISTERS_8BIT:
            self.set_8bit(name, value)
        else:
            raise KeyError(f"Unknown register: {name!r}")

    def as_dict(self) -> Dict[str, Union[int, bool]]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# @intent:responsibility Z80 CPUの全状態（レジスタファイル、メモリ、HALT、サイクル数）を保持します。
@dataclass
class Z80CpuState(CpuState):
    """
    Z80 CPUの状態を保持するデータクラス。
    CpuStateを拡張し、Z80のレジスタファイルを含みます。
    """
    registers: Z80Registers = field(default_factory=Z80Registers)

    def copy(self) -> "Z80CpuState":
        return Z80CpuState(
            memory=self.memory.copy(),
            halted=self.halted,
            cycles=self.cycles,
            registers=replace(self.registers),
        )
