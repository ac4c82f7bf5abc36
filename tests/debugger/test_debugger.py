# tests/debugger/test_debugger.py
"""
retro_z80_core.debugger.debuggerモジュールの単体テスト。
Debuggerのロード、ステップ実行、バッチ実行、ブレークポイント、ソース行の特定を検証します。
"""
import pytest

from retro_z80_core.arch.z80.cpu import Z80Cpu
from retro_z80_core.config.models import CpuInitialState, SessionConfig, UnimplementedPolicy
from retro_z80_core.core.snapshot import StepStatus
from retro_z80_core.debugger.debugger import (
    BreakpointCondition, BreakpointConditionType, Debugger, StopReason, UnimplementedOpcodeError
)
from retro_z80_core.transport.bus import BusAccessType

# @intent:test_suite デバッガの実行制御とソース行対応の検証。

SAMPLE = """\
XOR A        ; A = 0
LD A, 05
LD B, 0A
ADD A, B
INC A
HALT
"""


@pytest.fixture
def debugger():
    return Debugger(Z80Cpu())


def make_debugger(**config):
    return Debugger(Z80Cpu(), SessionConfig(**config))


class TestLoading:
    # @intent:test_case_load_source ソースをアセンブルしてロードし、対応表を保持することを検証します。
    def test_load_source(self, debugger):
        result = debugger.load_source(SAMPLE)
        assert list(result.data) == [0xAF, 0x3E, 0x05, 0x06, 0x0A, 0x80, 0x3C, 0x76]
        assert debugger.assembly is result
        assert debugger.address_to_line[5] == 3
        assert debugger.cpu.pc == 0
        assert debugger.state().memory.dump(0, 8) == bytes(result.data)
        assert debugger.current_line() == 0

    def test_load_source_at_origin(self):
        debugger = make_debugger(origin=0x8000)
        debugger.load_source(SAMPLE)
        assert debugger.cpu.pc == 0x8000
        assert debugger.address_to_line[0x8000] == 0
        snapshot = debugger.step_instruction()
        assert snapshot.result.pc == 0x8000
        assert snapshot.metadata.source_line == 0

    def test_load_program_discards_line_map(self, debugger):
        debugger.load_source(SAMPLE)
        debugger.load_program([0x3C, 0x76], origin=0x200)
        assert debugger.assembly is None
        assert dict(debugger.address_to_line) == {}
        assert debugger.cpu.pc == 0x200
        assert debugger.current_line() is None
        snapshot = debugger.step_instruction()
        assert snapshot.metadata.source_line is None

    def test_reload_does_not_clear_halt(self, debugger):
        debugger.load_program([0x76])
        debugger.step_instruction()
        debugger.load_source(SAMPLE)
        assert debugger.cpu.halted is True
        debugger.reset()
        assert debugger.cpu.halted is False
        assert debugger.state().memory.peek(0) == 0xAF


class TestStepping:
    # @intent:test_case_step_line 実行した命令のソース行が current_line で得られることを検証します。
    def test_step_and_current_line(self, debugger):
        debugger.load_source(SAMPLE)
        lines = []
        for _ in range(6):
            snapshot = debugger.step_instruction()
            lines.append((snapshot.metadata.source_line, debugger.current_line()))
        assert lines == [(0, 0), (1, 1), (2, 2), (3, 3), (4, 4), (5, 5)]

    def test_snapshot_contents(self, debugger):
        debugger.load_source(SAMPLE)
        debugger.step_instruction()
        snapshot = debugger.step_instruction()
        assert snapshot.result.status is StepStatus.EXECUTED
        assert snapshot.result.operation.text() == "LD A,$05"
        assert snapshot.metadata.cycle_count == 11
        assert snapshot.state.registers.a == 0x05
        assert [(a.address, a.access_type) for a in snapshot.bus_activity] == [
            (0x0001, BusAccessType.READ), (0x0002, BusAccessType.READ)
        ]
        assert debugger.get_last_snapshot() is snapshot

    def test_history_is_bounded(self):
        debugger = make_debugger(history_limit=3)
        debugger.load_program([0x18, 0xFE])
        debugger.run(10)
        history = debugger.get_history()
        assert len(history) == 3
        assert history[-1].metadata.cycle_count == 120

    def test_history_disabled(self):
        debugger = make_debugger(history_limit=0)
        debugger.load_program([0x00, 0x76])
        debugger.run()
        assert debugger.get_history() == []
        assert debugger.get_last_snapshot() is not None


class TestRun:
    def test_run_until_halt(self, debugger):
        debugger.load_source(SAMPLE)
        result = debugger.run()
        assert result.reason is StopReason.HALTED
        assert result.steps == 6
        regs = debugger.state().registers
        assert regs.a == 0x10
        assert regs.b == 0x0A
        assert debugger.cpu.halted is True

        again = debugger.run()
        assert again.reason is StopReason.HALTED
        assert again.steps == 0

    # @intent:test_case_steps_per_tick max_steps省略時は設定の steps_per_tick 命令まで実行することを検証します。
    def test_run_uses_steps_per_tick(self):
        debugger = make_debugger(steps_per_tick=7)
        debugger.load_program([0x18, 0xFE])
        result = debugger.run()
        assert result.reason is StopReason.STEP_LIMIT
        assert result.steps == 7
        assert debugger.cpu.cycles == 84

    def test_run_max_steps(self, debugger):
        debugger.load_program([0x00] * 10)
        result = debugger.run(4)
        assert result.reason is StopReason.STEP_LIMIT
        assert [s.result.pc for s in result.snapshots] == [0, 1, 2, 3]


class TestBreakpoints:
    # @intent:test_case_add_remove_breakpoint ブレークポイントの追加と削除が正しく行われることを検証します。
    def test_add_remove_breakpoint(self, debugger):
        bp1 = BreakpointCondition(BreakpointConditionType.PC_MATCH, value=0x1000)
        bp2 = BreakpointCondition(BreakpointConditionType.MEMORY_WRITE, address=0x2000)
        debugger.add_breakpoint(bp1)
        debugger.add_breakpoint(bp2)
        debugger.add_breakpoint(bp1) # 重複追加は無視される
        assert debugger.get_breakpoints() == [bp1, bp2]

        debugger.remove_breakpoint(bp1)
        debugger.remove_breakpoint(bp1) # 存在しないブレークポイントの削除はエラーにならない
        assert debugger.get_breakpoints() == [bp2]

    def test_pc_breakpoint(self, debugger):
        debugger.load_source(SAMPLE)
        bp = debugger.add_pc_breakpoint(0x0005)
        assert bp.condition_type is BreakpointConditionType.PC_MATCH

        first = debugger.run()
        assert first.reason is StopReason.BREAKPOINT
        assert first.steps == 3
        assert debugger.cpu.pc == 0x0005

        # 停止位置のブレークポイントは踏み越えて再開する
        second = debugger.run()
        assert second.reason is StopReason.HALTED
        assert [s.result.pc for s in second.snapshots] == [0x0005, 0x0006, 0x0007]

    def test_disabled_breakpoint_is_ignored(self, debugger):
        debugger.load_source(SAMPLE)
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.PC_MATCH, value=5, enabled=False))
        assert debugger.run().reason is StopReason.HALTED

    def test_memory_read_breakpoint(self, debugger):
        debugger.load_source(SAMPLE)
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.MEMORY_READ, address=0x0002))
        result = debugger.run()
        assert result.reason is StopReason.BREAKPOINT
        assert result.steps == 2

    def test_register_value_breakpoint(self, debugger):
        debugger.load_source(SAMPLE)
        debugger.add_breakpoint(
            BreakpointCondition(BreakpointConditionType.REGISTER_VALUE, register_name="a", value=0x0F)
        )
        result = debugger.run()
        assert result.reason is StopReason.BREAKPOINT
        assert result.steps == 4
        assert debugger.state().registers.a == 0x0F

    def test_register_change_breakpoint(self, debugger):
        debugger.load_source(SAMPLE)
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.REGISTER_CHANGE, register_name="b"))
        result = debugger.run()
        assert result.reason is StopReason.BREAKPOINT
        assert result.steps == 3
        assert debugger.current_line() == 2

    # @intent:test_case_register_name_case レジスタ名の大文字小文字に関係なく条件が評価されることを検証します。
    def test_register_change_with_uppercase_name(self, debugger):
        debugger.load_source("NOP\nNOP\nNOP\nHALT")
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.REGISTER_CHANGE, register_name="A"))
        result = debugger.run()
        assert result.reason is StopReason.HALTED
        assert result.steps == 4

    def test_register_change_with_uppercase_name_fires(self, debugger):
        debugger.load_source(SAMPLE)
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.REGISTER_CHANGE, register_name="B"))
        result = debugger.run()
        assert result.reason is StopReason.BREAKPOINT
        assert result.steps == 3

    def test_register_value_with_uppercase_name(self, debugger):
        debugger.load_source(SAMPLE)
        debugger.add_breakpoint(
            BreakpointCondition(BreakpointConditionType.REGISTER_VALUE, register_name="A", value=0x0F)
        )
        result = debugger.run()
        assert result.reason is StopReason.BREAKPOINT
        assert result.steps == 4

    @pytest.mark.parametrize("condition_type", [
        BreakpointConditionType.REGISTER_CHANGE, BreakpointConditionType.REGISTER_VALUE,
    ])
    def test_unknown_register_name_is_ignored(self, debugger, condition_type):
        debugger.load_source(SAMPLE)
        debugger.add_breakpoint(BreakpointCondition(condition_type, register_name="zz", value=None))
        result = debugger.run()
        assert result.reason is StopReason.HALTED
        assert result.steps == 6


class TestUnimplementedPolicy:
    PROGRAM = [0xED, 0x76]

    def test_continue(self):
        debugger = make_debugger(on_unimplemented=UnimplementedPolicy.CONTINUE)
        debugger.load_program(self.PROGRAM)
        result = debugger.run()
        assert result.reason is StopReason.HALTED
        assert result.snapshots[0].result.unimplemented is True
        assert result.snapshots[0].result.cycles == 4

    def test_stop(self):
        debugger = make_debugger(on_unimplemented=UnimplementedPolicy.STOP)
        debugger.load_program(self.PROGRAM)
        result = debugger.run()
        assert result.reason is StopReason.UNIMPLEMENTED
        assert result.steps == 1
        assert debugger.cpu.pc == 1

    def test_raise(self):
        debugger = make_debugger(on_unimplemented=UnimplementedPolicy.RAISE)
        debugger.load_program(self.PROGRAM)
        with pytest.raises(UnimplementedOpcodeError) as exc_info:
            debugger.run()
        assert exc_info.value.result.pc == 0
        assert exc_info.value.result.operation.opcode == 0xED
        assert "0xED" in str(exc_info.value)
        # 例外が送出されても命令は実行済みで履歴に残る
        assert debugger.cpu.pc == 1
        assert len(debugger.get_history()) == 1
        assert debugger._running is False


class TestReset:
    # @intent:test_case_reset リセットで設定の初期状態が再適用され、メモリは保持されることを検証します。
    def test_reset_applies_initial_state(self):
        config = SessionConfig(
            initial_state=CpuInitialState(pc=0x0100, sp=0x8000, registers={"a": 0x12, "iff1": True})
        )
        debugger = Debugger(Z80Cpu(), config)
        debugger.load_program([0x3C], origin=0x0100)
        debugger.reset()
        regs = debugger.state().registers
        assert (regs.pc, regs.sp, regs.a, regs.iff1) == (0x0100, 0x8000, 0x12, True)

        debugger.step_instruction()
        assert debugger.state().registers.a == 0x13
        debugger.reset()
        regs = debugger.state().registers
        assert regs.a == 0x12
        assert debugger.get_history() == []
        assert debugger.get_last_snapshot() is None
        assert debugger.state().memory.peek(0x0100) == 0x3C

    def test_clear_memory(self, debugger):
        debugger.load_source(SAMPLE)
        debugger.clear_memory()
        assert debugger.state().memory.dump(0, 8) == bytes(8)
        # 消去後は NOP が続く
        assert debugger.step_instruction().result.operation.mnemonic == "NOP"
