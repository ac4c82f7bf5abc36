# retro_z80_core/core/cpu.py
"""
Core Layer (抽象CPU)

状態（レジスタ群と64KBメモリ）の所有と、1命令単位の実行サイクルを抽象化します。
命令ごとの振る舞いは各アーキテクチャの命令表（arch/*/instructions）が持ちます。
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple, Union

from retro_z80_core.core.snapshot import Operation, StepResult, StepStatus
from retro_z80_core.core.state import CpuState
from retro_z80_core.common.types import RegisterLayoutInfo, RegisterName
from retro_z80_core.transport.bus import BusAccess

logger = logging.getLogger(__name__)

# @intent:responsibility 抽象CPUの基本機能とインターフェースを定義します。
class AbstractCpu(ABC):
    """
    全てのCPUエミュレーションの基底となる抽象クラス。
    状態（レジスタ群とメモリ）を単独で所有し、外部からの読み取りは snapshot() を介して行います。
    """
    def __init__(self):
        self._state: CpuState = self._create_initial_state()
        self._last_bus_activity: List[BusAccess] = []
        # @intent:rationale Stateオブジェクトの直接操作を避けるため、protectedな命名規則を採用。
        #                  外部からの読み取りは`snapshot()`、書き込みは`write_*`メソッドを介して行う。

    # @intent:responsibility 初期状態のCpuStateオブジェクトを生成します。
    @abstractmethod
    def _create_initial_state(self) -> CpuState:
        """
        CPUの初期状態を生成して返します。
        """

    @property
    @abstractmethod
    def pc(self) -> int:
        """現在のプログラムカウンタ。"""

    @pc.setter
    @abstractmethod
    def pc(self, value: int) -> None:
        pass

    # @intent:responsibility 現在の状態の独立したコピーを返します。
    def snapshot(self) -> CpuState:
        """
        レジスタとメモリをコピーした状態を返します。
        以後のCPUの変更は、返されたオブジェクトに影響しません。
        """
        return self._state.copy()

    def write_memory(self, address: int, value: int) -> None:
        """
        `address & 0xFFFF` に `value & 0xFF` を書き込みます。失敗しません。
        """
        self._state.memory.poke(address, value)

    @abstractmethod
    def write_register(self, name: RegisterName, value: Union[int, bool]) -> None:
        """
        レジスタのビット幅に応じてマスクして書き込みます。
        """

    # @intent:responsibility プログラムイメージをメモリに配置し、PCを origin に設定します。
    # @intent:rationale 他のレジスタ、無関係なメモリ、HALT状態には触れません。
    def load_program(self, origin: int, data: Iterable[int]) -> None:
        count = self._state.memory.load(origin, data)
        self.pc = origin
        logger.debug("Loaded %d bytes at %#06x", count, origin & 0xFFFF)

    # @intent:responsibility CPUをリセットします（ウォームリセット）。メモリ内容は保持されます。
    def reset(self) -> None:
        """
        レジスタ、HALT状態、サイクル数を初期値に戻します。メモリは消去しません。
        メモリの消去は clear_memory() で別途行います。
        """
        memory = self._state.memory
        self._state = self._create_initial_state()
        self._state.memory = memory
        self._last_bus_activity = []
        logger.debug("CPU reset (memory preserved)")

    def clear_memory(self) -> None:
        """
        メモリ全体を0で埋めます。レジスタには触れません。
        """
        self._state.memory.clear()
        logger.debug("Memory cleared")

    @property
    def halted(self) -> bool:
        return self._state.halted

    @property
    def cycles(self) -> int:
        return self._state.cycles

    def get_last_bus_activity(self) -> List[BusAccess]:
        """
        直前の step() で発生したメモリアクセスを返します。
        """
        return list(self._last_bus_activity)

    # @intent:responsibility メモリから次の命令（オペコード）をフェッチします。
    @abstractmethod
    def _fetch(self) -> int:
        """
        現在のPCからオペコードを読み出して返します。PCの更新は_update_pcで行います。
        """

    # @intent:responsibility フェッチしたオペコードを解析し、Operationオブジェクトに変換します。
    @abstractmethod
    def _decode(self, opcode: int) -> Operation:
        pass

    # @intent:responsibility デコードされた命令を実行し、CPUの状態を更新します。
    @abstractmethod
    def _execute(self, operation: Operation) -> bool:
        """
        命令を実行します。命令表に存在しないオペコードの場合は何もせず False を返します。
        """

    # @intent:responsibility CPUを1命令進め、その結果を返します。
    # @intent:rationale Template Methodパターンを採用し、共通の実行フロー（HALT判定→フェッチ→デコード→PC更新→実行→サイクル加算）を定義します。
    def step(self) -> StepResult:
        """
        CPUを1命令進めます。消費サイクル数は state.cycles に加算されます。
        """
        memory = self._state.memory
        memory.get_and_clear_activity_log()
        initial_pc = self.pc

        halt_result = self._handle_halt(initial_pc)
        if halt_result is not None:
            self._last_bus_activity = []
            return halt_result

        opcode = self._fetch()
        operation = self._decode(opcode)
        self._update_pc(operation)
        implemented = self._execute(operation)

        self._state.cycles += operation.cycle_count
        self._last_bus_activity = memory.get_and_clear_activity_log()

        if not implemented:
            logger.warning("Opcode 0x%02X at %#06x not implemented", opcode, initial_pc)
            return StepResult(
                cycles=operation.cycle_count,
                status=StepStatus.UNIMPLEMENTED,
                pc=initial_pc,
                operation=operation,
            )
        return StepResult(
            cycles=operation.cycle_count,
            status=StepStatus.EXECUTED,
            pc=initial_pc,
            operation=operation,
        )

    # @intent:responsibility HALT状態の場合の処理を行います。
    # @intent:return HALT中であればその結果、そうでなければNone。
    def _handle_halt(self, current_pc: int) -> Optional[StepResult]:
        if self._state.halted:
            return StepResult(cycles=0, status=StepStatus.HALTED, pc=current_pc)
        return None

    # @intent:responsibility 命令実行前にPCを命令長分進めます（0x10000で折り返し）。
    def _update_pc(self, operation: Operation) -> None:
        self.pc = (self.pc + operation.length) & 0xFFFF

    @abstractmethod
    def get_register_map(self) -> Dict[str, int]:
        """
        レジスタ名（大文字）から現在値への辞書を返します。ペアレジスタも含みます。
        """

    @abstractmethod
    def get_register_layout(self) -> List[RegisterLayoutInfo]:
        """
        インスペクタやトレース出力向けに、レジスタのグループ分けとビット幅を返します。
        """

    @abstractmethod
    def get_flag_state(self) -> Dict[str, bool]:
        pass

    @abstractmethod
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        """
        `start_addr` から `length` バイトを逆アセンブルし、(address, hex_bytes, text) のリストを返します。
        """
