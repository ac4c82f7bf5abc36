# retro_z80_core/core/snapshot.py
"""
命令実行結果と実行状態の不変スナップショット

このモジュールは、1命令の実行結果（StepResult）と、その時点のCPU状態の完全なコピーを
記録した不変のデータ構造（Snapshot）を定義します。
ドライバ（デバッガ）への情報提供と、実行履歴の記録に用いる責務を負います。
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from retro_z80_core.core.state import CpuState
from retro_z80_core.transport.bus import BusAccess


# @intent:responsibility デコードされた命令の詳細を記録します。
@dataclass(frozen=True) # 不変データ構造
class Operation:
    """
    デコードされた命令の詳細（オペコード、ニーモニック、オペランド）を記録するデータクラス。
    """
    opcode: int # 例: 0xC3
    mnemonic: str # 例: "JP nn"
    operands: Tuple[str, ...] = () # 例: ("$1234",)
    operand_bytes: Tuple[int, ...] = () # 生のオペランドバイト（リトルエンディアンのまま）
    cycle_count: int = 0 # 命令実行に必要なクロックサイクル数
    length: int = 1 # 命令のバイト長

    @property
    def opcode_hex(self) -> str:
        return f"{self.opcode:02X}"

    # @intent:responsibility 表示用の "MNEMONIC op1,op2" 形式の文字列を返します。
    def text(self) -> str:
        if self.operands:
            return f"{self.mnemonic} {','.join(self.operands)}"
        return self.mnemonic


# @intent:responsibility step() の結果の種別を定義します。
class StepStatus(Enum):
    EXECUTED = "EXECUTED"           # 命令表にある命令を実行した
    HALTED = "HALTED"               # HALT中のため何もしなかった（0サイクル）
    UNIMPLEMENTED = "UNIMPLEMENTED" # 命令表にないオペコード（PCのみ進み、4サイクル消費）


# @intent:responsibility 1回の step() 呼び出しの結果を記録します。
@dataclass(frozen=True)
class StepResult:
    """
    消費サイクル数、結果の種別、実行した命令を保持します。
    """
    cycles: int
    status: StepStatus
    pc: int # 命令の先頭アドレス
    operation: Optional[Operation] = None

    @property
    def unimplemented(self) -> bool:
        return self.status is StepStatus.UNIMPLEMENTED

    @property
    def halted(self) -> bool:
        return self.status is StepStatus.HALTED


# @intent:responsibility 実行に関するメタデータを記録します。
@dataclass(frozen=True)
class Metadata:
    cycle_count: int # 累計サイクル数
    source_line: Optional[int] = None # 実行した命令のソース行（0始まり）


# @intent:responsibility ある一時点におけるCPU状態と直前の命令実行結果を不変に記録します。
@dataclass(frozen=True)
class Snapshot:
    """
    ある一時点における、CPUの完全な状態を記録した不変のデータ構造。
    `state` は生成時にコピーされたものであり、以後のCPUの変更の影響を受けません。
    """
    state: CpuState
    result: StepResult
    metadata: Metadata
    bus_activity: Tuple[BusAccess, ...] = field(default_factory=tuple)
