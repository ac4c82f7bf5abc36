# tests/arch/z80/test_z80_instructions.py
"""
Z80命令表の各命令（NOP, LD r,n, INC A, DEC A, ADD A,B, XOR A, JP nn, JR e, HALT）の
実行結果とフラグを検証します。
"""
import pytest

from retro_z80_core.arch.z80.cpu import Z80Cpu
from retro_z80_core.arch.z80.instructions import decode_opcode, is_implemented, UNIMPLEMENTED_CYCLES
from retro_z80_core.arch.z80.instructions.maps import DECODE_MAP, EXECUTE_MAP
from retro_z80_core.arch.z80.instructions.alu import decode_xor_r, execute_xor_r
from retro_z80_core.arch.z80.state import X_FLAG, Y_FLAG, Z80CpuState
from retro_z80_core.transport.bus import Memory


def run_program(program, origin=0x0000, steps=1, **registers):
    cpu = Z80Cpu()
    for name, value in registers.items():
        cpu.write_register(name, value)
    cpu.load_program(origin, program)
    results = [cpu.step() for _ in range(steps)]
    return cpu, results


class TestOpcodeTable:
    # @intent:test_case_table 命令表が実装済みのオペコードだけを含むことを検証します。
    def test_table_contents(self):
        expected = {0x00, 0x06, 0x0E, 0x16, 0x1E, 0x26, 0x2E, 0x3E,
                    0x3C, 0x3D, 0x80, 0xAF, 0xC3, 0x18, 0x76}
        assert set(EXECUTE_MAP) == expected
        assert set(DECODE_MAP) == expected

    @pytest.mark.parametrize("opcode", [0x01, 0x36, 0x04, 0x81, 0xA8, 0xCB, 0xED, 0xFF])
    def test_unknown_opcodes(self, opcode):
        assert is_implemented(opcode) is False
        operation = decode_opcode(opcode, Memory(), 0)
        assert operation.length == 1
        assert operation.cycle_count == UNIMPLEMENTED_CYCLES


class TestLoad:
    # @intent:test_case_ld_r_n 全レジスタへの即値ロードが7サイクル、2バイトであることを検証します。
    @pytest.mark.parametrize("opcode, reg", [
        (0x06, "b"), (0x0E, "c"), (0x16, "d"), (0x1E, "e"),
        (0x26, "h"), (0x2E, "l"), (0x3E, "a"),
    ])
    def test_ld_r_n(self, opcode, reg):
        cpu, (result,) = run_program([opcode, 0xA5], f=0xFF)
        state = cpu.snapshot()
        assert getattr(state.registers, reg) == 0xA5
        assert state.registers.pc == 2
        assert state.registers.f == 0xFF  # フラグは変化しない
        assert result.cycles == 7
        assert result.operation.text() == f"LD {reg.upper()},$A5"


class TestIncDec:
    def test_inc_a_overflow_to_negative(self):
        cpu, (result,) = run_program([0x3C], a=0x7F)
        regs = cpu.snapshot().registers
        assert regs.a == 0x80
        assert (regs.flag_s, regs.flag_z, regs.flag_h, regs.flag_pv, regs.flag_n) == (True, False, True, True, False)
        assert result.cycles == 4

    def test_inc_a_wraps_to_zero(self):
        cpu, _ = run_program([0x3C], a=0xFF)
        regs = cpu.snapshot().registers
        assert regs.a == 0x00
        assert regs.flag_z is True
        assert regs.flag_h is True
        assert regs.flag_pv is False

    def test_dec_a_from_zero(self):
        cpu, (result,) = run_program([0x3D], a=0x00)
        regs = cpu.snapshot().registers
        assert regs.a == 0xFF
        assert (regs.flag_s, regs.flag_z, regs.flag_h, regs.flag_pv, regs.flag_n) == (True, False, True, False, True)
        assert result.cycles == 4

    def test_dec_a_overflow(self):
        cpu, _ = run_program([0x3D], a=0x80)
        regs = cpu.snapshot().registers
        assert regs.a == 0x7F
        assert regs.flag_pv is True
        assert regs.flag_s is False

    @pytest.mark.parametrize("opcode, start", [(0x3C, 0xFF), (0x3D, 0x00)])
    def test_inc_dec_preserve_carry(self, opcode, start):
        for carry in (False, True):
            cpu, _ = run_program([opcode], a=start, f=0x01 if carry else 0x00)
            assert cpu.snapshot().registers.flag_c is carry


class TestAdd:
    def test_add_carry_to_zero(self):
        cpu, (result,) = run_program([0x80], a=0xFF, b=0x01)
        regs = cpu.snapshot().registers
        assert regs.a == 0x00
        assert (regs.flag_z, regs.flag_c, regs.flag_h, regs.flag_pv, regs.flag_n, regs.flag_s) == (
            True, True, True, False, False, False
        )
        assert result.cycles == 4

    def test_add_signed_overflow(self):
        cpu, _ = run_program([0x80], a=0x7F, b=0x01)
        regs = cpu.snapshot().registers
        assert regs.a == 0x80
        assert regs.flag_pv is True
        assert regs.flag_s is True
        assert regs.flag_c is False

    def test_add_simple(self):
        cpu, _ = run_program([0x80], a=0x05, b=0x0A)
        regs = cpu.snapshot().registers
        assert regs.a == 0x0F
        assert regs.b == 0x0A
        assert regs.f & ~(X_FLAG | Y_FLAG) == 0


class TestXor:
    # @intent:test_case_xor_a Aの値に関わらずA=0、Z=1、P/V=1、他のフラグ0になることを検証します。
    @pytest.mark.parametrize("a", [0x00, 0x01, 0x5A, 0x80, 0xFF])
    def test_xor_a(self, a):
        cpu, (result,) = run_program([0xAF], a=a, f=0xD7)
        regs = cpu.snapshot().registers
        assert regs.a == 0
        assert regs.flag_z is True
        assert regs.flag_pv is True
        assert (regs.flag_s, regs.flag_h, regs.flag_n, regs.flag_c) == (False, False, False, False)
        assert result.cycles == 4

    def test_xor_r_with_other_register(self):
        state = Z80CpuState()
        state.registers.a = 0x0F
        state.registers.b = 0x0C
        operation = decode_xor_r(0xA8, state.memory, 0)
        assert operation.text() == "XOR B"
        execute_xor_r(state, operation)
        regs = state.registers
        assert regs.a == 0x03
        assert regs.flag_pv is True
        assert regs.flag_z is False

    def test_xor_a_keeps_undocumented_bits(self):
        cpu, _ = run_program([0xAF], a=0x12, f=X_FLAG | Y_FLAG)
        regs = cpu.snapshot().registers
        assert regs.flag_x is True
        assert regs.flag_y is True


class TestControl:
    def test_nop(self):
        cpu, (result,) = run_program([0x00])
        assert cpu.pc == 1
        assert result.cycles == 4

    # @intent:test_case_jp オペランドがリトルエンディアンで読まれ、3バイト消費することを検証します。
    def test_jp_nn(self):
        cpu, (result,) = run_program([0xC3, 0x34, 0x12])
        assert cpu.pc == 0x1234
        assert result.cycles == 10
        assert result.operation.length == 3
        assert result.operation.text() == "JP $1234"

    # @intent:test_case_jr 相対ジャンプの変位が符号付きで扱われることを検証します。
    def test_jr_backwards_to_self(self):
        cpu, (result,) = run_program([0x18, 0xFE], origin=0x4000)
        assert cpu.pc == 0x4000
        assert result.cycles == 12
        assert result.operation.length == 2

    def test_jr_forward(self):
        cpu, _ = run_program([0x18, 0x05], origin=0x4000)
        assert cpu.pc == 0x4007

    def test_jr_wraps_address_space(self):
        cpu, _ = run_program([0x18, 0x80], origin=0x0010)
        # 0x0012 - 128 = -0x6E
        assert cpu.pc == (0x0012 - 128) & 0xFFFF

    def test_jr_infinite_loop(self):
        cpu, results = run_program([0x18, 0xFE], steps=5)
        assert cpu.pc == 0
        assert cpu.cycles == 60
        assert all(r.cycles == 12 for r in results)

    def test_halt(self):
        cpu, (result,) = run_program([0x76])
        assert cpu.halted is True
        assert cpu.pc == 1
        assert result.cycles == 4
