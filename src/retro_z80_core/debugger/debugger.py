# retro_z80_core/debugger/debugger.py
"""
デバッガモジュール。

CPUを所有するドライバとして、プログラムのアセンブルとロード、ステップ実行、
バッチ実行（1ティックあたり複数ステップ）、ブレークポイントによる中断、
実行中の命令に対応するソース行の特定を行います。
いつ実行を止めるかの判断はすべてこのモジュールの責務であり、CPU側には持たせません。
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, Iterable, List, Mapping, Optional

from retro_z80_core.arch.z80.cpu import Z80Cpu
from retro_z80_core.arch.z80.state import Z80CpuState
from retro_z80_core.config.models import SessionConfig, UnimplementedPolicy
from retro_z80_core.core.snapshot import Metadata, Snapshot, StepResult
from retro_z80_core.loader.assembler import AssemblyResult, assemble
from retro_z80_core.transport.bus import BusAccessType

logger = logging.getLogger(__name__)


class UnimplementedOpcodeError(RuntimeError):
    """on_unimplemented=raise のときに、未実装オペコードを実行した結果とともに送出されます。"""

    def __init__(self, result: StepResult):
        self.result = result
        super().__init__(
            f"Opcode 0x{result.operation.opcode:02X} at {result.pc:#06x} not implemented"
            if result.operation else f"Unimplemented opcode at {result.pc:#06x}"
        )


# @intent:responsibility ブレークポイントの条件タイプを定義します。
class BreakpointConditionType(Enum):
    PC_MATCH = "PC_MATCH"               # プログラムカウンタが特定のアドレスに一致
    MEMORY_READ = "MEMORY_READ"         # 特定のアドレスが読み込まれた
    MEMORY_WRITE = "MEMORY_WRITE"       # 特定のアドレスに書き込まれた
    REGISTER_VALUE = "REGISTER_VALUE"   # 特定のレジスタが特定の値になった
    REGISTER_CHANGE = "REGISTER_CHANGE" # 特定のレジスタの値が変化した


# @intent:responsibility ブレークポイントをトリガーする条件を定義します。
@dataclass(frozen=True)
class BreakpointCondition:
    condition_type: BreakpointConditionType
    value: Optional[int] = None           # PC_MATCH, REGISTER_VALUEで使用
    address: Optional[int] = None         # MEMORY_READ, MEMORY_WRITEで使用
    register_name: Optional[str] = None   # REGISTER_VALUE, REGISTER_CHANGEで使用
    enabled: bool = True


# @intent:responsibility run() が終了した理由。
class StopReason(Enum):
    STEP_LIMIT = "STEP_LIMIT"
    HALTED = "HALTED"
    BREAKPOINT = "BREAKPOINT"
    UNIMPLEMENTED = "UNIMPLEMENTED"
    STOPPED = "STOPPED"


@dataclass(frozen=True)
class RunResult:
    reason: StopReason
    snapshots: List[Snapshot] = field(default_factory=list)

    @property
    def steps(self) -> int:
        return len(self.snapshots)


# @intent:responsibility CPUの実行制御、ブレークポイント管理、実行履歴とソース行の対応付けを行います。
class Debugger:
    """
    CPUを駆動するドライバ。CPUの状態はスナップショット経由でのみ読み取ります。
    """
    def __init__(self, cpu: Z80Cpu, config: Optional[SessionConfig] = None):
        self._cpu = cpu
        self._config = config or SessionConfig()
        self._breakpoints: List[BreakpointCondition] = []
        self._running: bool = False
        self._history: Deque[Snapshot] = deque(maxlen=self._config.history_limit)
        self._last_snapshot: Optional[Snapshot] = None
        self._assembly: Optional[AssemblyResult] = None
        self._previous_pc: Optional[int] = None

    @property
    def cpu(self) -> Z80Cpu:
        return self._cpu

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def assembly(self) -> Optional[AssemblyResult]:
        return self._assembly

    @property
    def address_to_line(self) -> Mapping[int, int]:
        return self._assembly.address_to_line if self._assembly else {}

    # --- Program loading ---

    # @intent:responsibility ソースをアセンブルし、設定されたoriginにロードします。
    def load_source(self, source: str) -> AssemblyResult:
        origin = self._config.origin
        result = assemble(source, origin)
        self._cpu.load_program(origin, result.data)
        self._assembly = result
        self._previous_pc = self._cpu.pc
        logger.debug("Assembled %d bytes (%d diagnostics)", len(result.data), len(result.diagnostics))
        return result

    def load_program(self, data: Iterable[int], origin: Optional[int] = None) -> None:
        """
        アセンブル済みのバイト列をロードします。ソース行の対応表は破棄されます。
        """
        self._cpu.load_program(self._config.origin if origin is None else origin, data)
        self._assembly = None
        self._previous_pc = self._cpu.pc

    # --- Breakpoints ---

    def add_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition not in self._breakpoints:
            self._breakpoints.append(condition)

    def remove_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition in self._breakpoints:
            self._breakpoints.remove(condition)

    def add_pc_breakpoint(self, address: int) -> BreakpointCondition:
        condition = BreakpointCondition(BreakpointConditionType.PC_MATCH, value=address & 0xFFFF)
        self.add_breakpoint(condition)
        return condition

    def get_breakpoints(self) -> List[BreakpointCondition]:
        return list(self._breakpoints)

    def _pc_breakpoint_hit(self, pc: int) -> bool:
        return any(
            bp.enabled and bp.condition_type == BreakpointConditionType.PC_MATCH and bp.value == pc
            for bp in self._breakpoints
        )

    def _check_other_breakpoints(
        self, snapshot: Snapshot, registers_before: Dict[str, int], registers_after: Dict[str, int]
    ) -> bool:
        """
        Snapshotと実行前後のレジスタマップに基づいてPC_MATCH以外のブレークポイントをチェックします。
        レジスタ名は大文字小文字を区別せず、存在しないレジスタ名の条件は無視されます。
        """
        for bp in self._breakpoints:
            if not bp.enabled:
                continue

            if bp.condition_type == BreakpointConditionType.MEMORY_READ:
                if any(a.access_type == BusAccessType.READ and a.address == bp.address for a in snapshot.bus_activity):
                    return True
            elif bp.condition_type == BreakpointConditionType.MEMORY_WRITE:
                if any(a.access_type == BusAccessType.WRITE and a.address == bp.address for a in snapshot.bus_activity):
                    return True
            elif bp.condition_type in (BreakpointConditionType.REGISTER_VALUE, BreakpointConditionType.REGISTER_CHANGE):
                name = (bp.register_name or "").upper()
                if name not in registers_after:
                    continue
                if bp.condition_type == BreakpointConditionType.REGISTER_VALUE:
                    if registers_after[name] == bp.value:
                        return True
                elif registers_after[name] != registers_before.get(name):
                    return True
        return False

    # --- Execution ---

    def step_instruction(self) -> Snapshot:
        """
        CPUを1命令分実行し、その結果のSnapshotを返します。
        """
        self._previous_pc = self._cpu.pc
        result = self._cpu.step()
        state = self._cpu.snapshot()
        snapshot = Snapshot(
            state=state,
            result=result,
            metadata=Metadata(
                cycle_count=state.cycles,
                source_line=self.address_to_line.get(result.pc),
            ),
            bus_activity=tuple(self._cpu.get_last_bus_activity()),
        )
        self._last_snapshot = snapshot
        self._history.append(snapshot)

        if result.unimplemented and self._config.on_unimplemented is UnimplementedPolicy.RAISE:
            raise UnimplementedOpcodeError(result)
        return snapshot

    def run(self, max_steps: Optional[int] = None) -> RunResult:
        """
        最大 `max_steps`（省略時は設定の steps_per_tick）命令を連続実行します。
        HALT、ブレークポイント、（設定により）未実装オペコード、stop() で早期に終了します。
        """
        limit = self._config.steps_per_tick if max_steps is None else max_steps
        snapshots: List[Snapshot] = []
        self._running = True

        # 現在のPCにあるブレークポイントは、最初の1命令だけ踏み越える
        first = True
        while len(snapshots) < limit:
            if not self._running:
                return RunResult(StopReason.STOPPED, snapshots)
            if self._cpu.halted:
                self._running = False
                return RunResult(StopReason.HALTED, snapshots)

            current_pc = self._cpu.pc
            if not first and self._pc_breakpoint_hit(current_pc):
                self._running = False
                logger.info("Breakpoint hit at PC: %#06x", current_pc)
                return RunResult(StopReason.BREAKPOINT, snapshots)
            first = False

            registers_before = self._cpu.get_register_map()
            try:
                snapshot = self.step_instruction()
            except UnimplementedOpcodeError:
                self._running = False
                raise
            snapshots.append(snapshot)

            if snapshot.result.unimplemented and self._config.on_unimplemented is UnimplementedPolicy.STOP:
                self._running = False
                return RunResult(StopReason.UNIMPLEMENTED, snapshots)

            if self._cpu.halted:
                self._running = False
                logger.info("CPU halted at PC: %#06x after %d cycles", snapshot.result.pc, self._cpu.cycles)
                return RunResult(StopReason.HALTED, snapshots)

            if self._check_other_breakpoints(snapshot, registers_before, self._cpu.get_register_map()):
                self._running = False
                logger.info("Breakpoint hit at PC: %#06x", self._cpu.pc)
                return RunResult(StopReason.BREAKPOINT, snapshots)

        self._running = False
        return RunResult(StopReason.STEP_LIMIT, snapshots)

    def stop(self) -> None:
        self._running = False

    # --- State ---

    def reset(self) -> None:
        """
        ウォームリセット。レジスタを初期化して設定の初期値を適用します。メモリは保持されます。
        """
        self._cpu.reset()
        initial = self._config.initial_state
        self._cpu.write_register("pc", initial.pc)
        self._cpu.write_register("sp", initial.sp)
        for reg_name, value in initial.registers.items():
            self._cpu.write_register(reg_name, value)
        self._history.clear()
        self._last_snapshot = None
        self._previous_pc = self._cpu.pc

    def clear_memory(self) -> None:
        self._cpu.clear_memory()

    def state(self) -> Z80CpuState:
        return self._cpu.snapshot()

    # @intent:responsibility 直前に実行した命令のソース行（なければ現在のPCの行）を返します。
    def current_line(self) -> Optional[int]:
        line_map = self.address_to_line
        if self._previous_pc is not None and self._previous_pc in line_map:
            return line_map[self._previous_pc]
        return line_map.get(self._cpu.pc)

    def get_history(self) -> List[Snapshot]:
        return list(self._history)

    def get_last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot
