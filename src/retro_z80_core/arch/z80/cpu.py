# retro_z80_core/arch/z80/cpu.py
"""
Z80 CPUエミュレーションの中心モジュール。

このモジュールはZ80 CPUの具体的な実装を提供し、
AbstractCpuインターフェースを実装します。
"""
from typing import Dict, List, Tuple, Union

from retro_z80_core.core.cpu import AbstractCpu
from retro_z80_core.core.snapshot import Operation
from retro_z80_core.arch.z80.state import Z80CpuState
from retro_z80_core.arch.z80.instructions import decode_opcode, execute_instruction
from retro_z80_core.arch.z80 import disassembler
from retro_z80_core.common.types import RegisterInfo, RegisterLayoutInfo, RegisterName

# @intent:responsibility Z80 CPUの具体的なエミュレーションロジックを提供します。
class Z80Cpu(AbstractCpu):
    """
    Z80 CPUをエミュレートするクラス。
    生成直後の状態は、SP=0xFFFF を除き全レジスタ0、メモリ0、HALT解除、サイクル数0です。
    """
    _state: Z80CpuState

    # @intent:responsibility Z80 CPUの初期状態（Z80CpuState）を生成します。
    def _create_initial_state(self) -> Z80CpuState:
        return Z80CpuState()

    @property
    def pc(self) -> int:
        return self._state.registers.pc

    @pc.setter
    def pc(self, value: int) -> None:
        self._state.registers.set_16bit("pc", value)

    def snapshot(self) -> Z80CpuState:
        return self._state.copy()

    def write_register(self, name: RegisterName, value: Union[int, bool]) -> None:
        self._state.registers.write(name, value)

    # @intent:responsibility 現在のPCからオペコードをフェッチします。PCの更新はstep内で命令長に応じて行います。
    def _fetch(self) -> int:
        return self._state.memory.read(self._state.registers.pc)

    def _decode(self, opcode: int) -> Operation:
        # pcを渡すのは、マルチバイト命令のオペランド読み込みのため
        return decode_opcode(opcode, self._state.memory, self._state.registers.pc)

    def _execute(self, operation: Operation) -> bool:
        return execute_instruction(operation, self._state)

    def get_register_map(self) -> Dict[str, int]:
        r = self._state.registers
        return {
            "A": r.a, "F": r.f, "B": r.b, "C": r.c, "D": r.d, "E": r.e, "H": r.h, "L": r.l,
            "PC": r.pc, "SP": r.sp, "IX": r.ix, "IY": r.iy,
            "I": r.i, "R": r.r,
            "AF": r.af, "BC": r.bc, "DE": r.de, "HL": r.hl,
            "IFF1": int(r.iff1), "IFF2": int(r.iff2), "IM": r.im,
        }

    def get_register_layout(self) -> List[RegisterLayoutInfo]:
        return [
            RegisterLayoutInfo("Main Registers", [
                RegisterInfo(name, 8) for name in ("A", "F", "B", "C", "D", "E", "H", "L")
            ]),
            RegisterLayoutInfo("Special Registers", [
                RegisterInfo("PC", 16), RegisterInfo("SP", 16), RegisterInfo("IX", 16), RegisterInfo("IY", 16),
                RegisterInfo("I", 8), RegisterInfo("R", 8)
            ]),
            RegisterLayoutInfo("Interrupt", [
                RegisterInfo("IFF1", 1), RegisterInfo("IFF2", 1), RegisterInfo("IM", 8)
            ]),
        ]

    def get_flag_state(self) -> Dict[str, bool]:
        r = self._state.registers
        return {
            "S": r.flag_s,
            "Z": r.flag_z,
            "Y": r.flag_y,
            "H": r.flag_h,
            "X": r.flag_x,
            "PV": r.flag_pv,
            "N": r.flag_n,
            "C": r.flag_c,
        }

    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        return disassembler.disassemble(self._state.memory, start_addr, length)
